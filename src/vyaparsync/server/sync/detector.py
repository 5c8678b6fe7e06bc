"""Conflict detection for offline updates.

Implements last-write-wins-with-detection: an update is stale when the
server's copy of the record was modified after the timestamp the client
based its change on. Stale updates are never applied; the current server
record is handed back so the caller can pick a resolution.

Timestamps are coarse and sensitive to client clock skew. There is no
per-field merge.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from vyaparsync.server.database import as_utc

CLIENT_TIMESTAMP_KEYS = ("updatedAt", "updated_at")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp sent by a client or read from a record snapshot.

    Accepts datetimes, ISO 8601 strings (with or without a trailing ``Z``)
    and epoch milliseconds. Naive values are taken to be UTC.

    Returns:
        Aware UTC datetime, or None if the value is missing or unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, int | float):
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


class TimestampConflictDetector:
    """Compares the server's ``updated_at`` with the client's base timestamp."""

    def client_timestamp(self, data: dict[str, Any] | None) -> datetime | None:
        """Extract the timestamp the client's change is based on."""
        if not data:
            return None
        for key in CLIENT_TIMESTAMP_KEYS:
            if key in data:
                return parse_timestamp(data[key])
        return None

    def is_stale(self, server_record: dict[str, Any], data: dict[str, Any] | None) -> bool:
        """Check whether the server record is strictly newer than the client's base.

        A missing or unparseable timestamp on either side is not a conflict.

        Args:
            server_record: Snapshot of the current server record.
            data: Update payload sent by the client.

        Returns:
            True if the update must not be applied.
        """
        server_ts = parse_timestamp(server_record.get("updated_at"))
        client_ts = self.client_timestamp(data)
        if server_ts is None or client_ts is None:
            return False
        return server_ts > client_ts
