"""SyncService: the entry point to offline sync.

Wires the queue store, entity handlers, executor and resolver together so
HTTP routes, CLI commands and tests all drive sync the same way.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from vyaparsync.server.sync.detector import TimestampConflictDetector
from vyaparsync.server.sync.entities import build_entity_stores
from vyaparsync.server.sync.executor import SyncExecutor
from vyaparsync.server.sync.handlers import EntityHandler
from vyaparsync.server.sync.queue import SyncQueueStore
from vyaparsync.server.sync.resolver import ConflictResolver

if TYPE_CHECKING:
    from vyaparsync.core.types import EntityType, Resolution, SyncAction
    from vyaparsync.server.database import Database
    from vyaparsync.server.models import SyncOperation
    from vyaparsync.server.sync.entities import EntityStore
    from vyaparsync.server.sync.types import (
        BatchItem,
        BatchItemResult,
        ExecutionResult,
        SyncResult,
        SyncStatusCounts,
    )


class SyncService:
    """Queue, apply and resolve offline mutations."""

    def __init__(
        self,
        db: Database,
        detector: TimestampConflictDetector | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            db: Database holding the queue and the entity tables.
            detector: Conflict detector shared by all entity handlers.
        """
        detector = detector or TimestampConflictDetector()
        self._stores = build_entity_stores(db)
        self._queue = SyncQueueStore(db)
        self._executor = SyncExecutor(
            self._queue,
            {entity: EntityHandler(store, detector) for entity, store in self._stores.items()},
        )
        self._resolver = ConflictResolver(self._queue, self._executor)

    @property
    def queue(self) -> SyncQueueStore:
        return self._queue

    @property
    def executor(self) -> SyncExecutor:
        return self._executor

    def store(self, entity_type: EntityType) -> EntityStore:
        """Get the entity store for an entity type."""
        return self._stores[entity_type]

    def enqueue(
        self,
        user_id: int,
        company_id: str,
        table_name: str,
        record_id: str,
        operation: SyncAction | str,
        data: dict[str, Any] | None = None,
        device_id: str | None = None,
    ) -> int:
        """Queue one operation. See SyncQueueStore.enqueue."""
        return self._queue.enqueue(
            user_id, company_id, table_name, record_id, operation, data, device_id
        )

    def enqueue_batch(self, user_id: int, items: Iterable[BatchItem]) -> list[BatchItemResult]:
        """Queue several operations independently."""
        return self._queue.enqueue_batch(user_id, items)

    def get_operation(self, operation_id: int) -> SyncOperation | None:
        return self._queue.get(operation_id)

    def list_pending(self, user_id: int, company_id: str | None = None) -> list[SyncOperation]:
        return self._queue.list_pending(user_id, company_id)

    def list_conflicts(self, user_id: int, company_id: str | None = None) -> list[SyncOperation]:
        return self._queue.list_conflicts(user_id, company_id)

    def execute(self, operation: SyncOperation, force: bool = False) -> ExecutionResult:
        """Apply one operation without touching its queued status."""
        return self._executor.execute(operation, force=force)

    def run_sync(self, user_id: int, company_id: str) -> SyncResult:
        """Run a sync pass. See SyncExecutor.run_sync."""
        return self._executor.run_sync(user_id, company_id)

    def get_status(self, user_id: int, company_id: str | None = None) -> SyncStatusCounts:
        """Count a user's operations per status."""
        return self._queue.status_counts(user_id, company_id)

    def resolve(
        self,
        operation_id: int,
        resolution: Resolution | str,
        merged_data: dict[str, Any] | None = None,
        user_id: int | None = None,
    ) -> bool:
        """Resolve a conflict. See ConflictResolver.resolve."""
        return self._resolver.resolve(operation_id, resolution, merged_data, user_id=user_id)
