"""Per-entity handlers implementing the create/update/delete contract.

Only updates are checked for conflicts. Creates insert unconditionally
(duplicate ids fail) and deletes are unconditional and idempotent.
"""

from __future__ import annotations

import logging
from typing import Any

from vyaparsync.server.sync.detector import TimestampConflictDetector
from vyaparsync.server.sync.entities import EntityStore
from vyaparsync.server.sync.errors import EntityNotFoundError
from vyaparsync.server.sync.types import ExecutionResult

logger = logging.getLogger(__name__)


class EntityHandler:
    """Applies sync operations to one entity store."""

    def __init__(
        self,
        store: EntityStore,
        detector: TimestampConflictDetector | None = None,
    ) -> None:
        self._store = store
        self._detector = detector or TimestampConflictDetector()

    @property
    def store(self) -> EntityStore:
        return self._store

    def create(
        self,
        record_id: str,
        data: dict[str, Any] | None,
        company_id: str | None = None,
    ) -> ExecutionResult:
        """Insert a new record."""
        self._store.insert(record_id, data, company_id=company_id)
        return ExecutionResult.ok()

    def update(
        self,
        record_id: str,
        data: dict[str, Any] | None,
        force: bool = False,
    ) -> ExecutionResult:
        """Update a record unless the server copy is newer than the client's base.

        Args:
            record_id: Target record.
            data: Update payload.
            force: Skip conflict detection (used when a conflict is resolved).

        Raises:
            EntityNotFoundError: If the record doesn't exist.
        """
        if not force:
            current = self._store.get(record_id)
            if current is None:
                raise EntityNotFoundError(self._store.name, record_id)
            if self._detector.is_stale(current, data):
                logger.info(
                    "Conflict on %s %s: server updated_at %s is newer than client base",
                    self._store.name,
                    record_id,
                    current.get("updated_at"),
                )
                return ExecutionResult.conflicted(current)

        self._store.update(record_id, data)
        return ExecutionResult.ok()

    def delete(self, record_id: str) -> ExecutionResult:
        """Delete a record; a missing record counts as deleted."""
        if not self._store.delete(record_id):
            logger.debug("%s %s already absent, delete is a no-op", self._store.name, record_id)
        return ExecutionResult.ok()
