"""Result types returned by the sync components.

This module provides:
- ExecutionResult: outcome of applying a single operation
- SyncResult: summary of a sync pass
- SyncStatusCounts: per-status operation counts
- BatchItem, BatchItemResult: batch enqueue input and per-item outcome
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class ExecutionResult:
    """Outcome of executing one sync operation.

    Exactly one of three shapes: success, conflict (with the server snapshot),
    or failure (with an error message).
    """

    success: bool
    conflict: bool = False
    conflict_data: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def ok(cls) -> ExecutionResult:
        return cls(success=True)

    @classmethod
    def conflicted(cls, server_record: dict[str, Any]) -> ExecutionResult:
        return cls(success=False, conflict=True, conflict_data=server_record)

    @classmethod
    def failed(cls, error: str) -> ExecutionResult:
        return cls(success=False, error=error)


@dataclass
class SyncResult:
    """Summary of a sync pass.

    ``success`` is True iff no operation failed; conflicts do not count as
    failures.
    """

    success: bool = True
    synced: int = 0
    failed: int = 0
    conflicts: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        """Number of operations handled in this pass."""
        return self.synced + self.failed + self.conflicts

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)


@dataclass
class SyncStatusCounts:
    """Number of queued operations in each status."""

    pending: int = 0
    synced: int = 0
    failed: int = 0
    conflicts: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for serialization."""
        return asdict(self)


@dataclass
class BatchItem:
    """One operation to enqueue as part of a batch."""

    company_id: str
    table_name: str
    record_id: str
    operation: str
    data: dict[str, Any] | None = None
    device_id: str | None = None


@dataclass
class BatchItemResult:
    """Outcome of enqueueing one batch item."""

    success: bool
    record_id: str
    operation_id: int | None = None
    error: str | None = None
