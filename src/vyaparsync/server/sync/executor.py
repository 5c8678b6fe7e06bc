"""Sync executor: applies queued operations to the entity stores.

This module provides:
- SyncExecutor.execute: apply one operation and classify the outcome
- SyncExecutor.run_sync: drain a user's pending queue for one company

Operations in a pass run sequentially and independently. There is no
transaction spanning operations; partial progress is kept.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from vyaparsync.core.types import EntityType, SyncAction, SyncStatus
from vyaparsync.server.sync.errors import (
    InvalidOperationError,
    SyncError,
    UnsupportedEntityError,
)
from vyaparsync.server.sync.types import ExecutionResult, SyncResult

if TYPE_CHECKING:
    from vyaparsync.server.models import SyncOperation
    from vyaparsync.server.sync.handlers import EntityHandler
    from vyaparsync.server.sync.queue import SyncQueueStore

logger = logging.getLogger(__name__)


class SyncExecutor:
    """Dispatches sync operations to per-entity handlers."""

    def __init__(
        self,
        queue: SyncQueueStore,
        handlers: Mapping[EntityType, EntityHandler],
    ) -> None:
        """Initialize the executor.

        Args:
            queue: Queue store used to read pending work and record outcomes.
            handlers: One handler per supported entity type.
        """
        self._queue = queue
        self._handlers = dict(handlers)

    def handler_for(self, table_name: str) -> EntityHandler:
        """Resolve the handler for a table name.

        Raises:
            UnsupportedEntityError: If the table doesn't accept offline mutations.
        """
        try:
            entity_type = EntityType(table_name)
        except ValueError as e:
            raise UnsupportedEntityError(table_name) from e
        handler = self._handlers.get(entity_type)
        if handler is None:
            raise UnsupportedEntityError(table_name)
        return handler

    def execute(self, operation: SyncOperation, force: bool = False) -> ExecutionResult:
        """Apply one operation to its entity store.

        Errors are returned as a failed result rather than raised.

        Args:
            operation: Operation to apply (persisted or transient).
            force: Apply updates without conflict detection.

        Returns:
            Success, conflict (with the server record) or failure.
        """
        try:
            handler = self.handler_for(operation.table_name)
            try:
                action = SyncAction(operation.operation)
            except ValueError as e:
                raise InvalidOperationError(operation.operation) from e

            if action is SyncAction.CREATE:
                return handler.create(operation.record_id, operation.data, operation.company_id)
            if action is SyncAction.UPDATE:
                return handler.update(operation.record_id, operation.data, force=force)
            return handler.delete(operation.record_id)
        except SyncError as e:
            return ExecutionResult.failed(str(e))
        except SQLAlchemyError as e:
            logger.warning("Database error applying sync operation %s: %s", operation.id, e)
            return ExecutionResult.failed(f"Database error: {e}")

    def run_sync(self, user_id: int, company_id: str) -> SyncResult:
        """Apply all pending operations of a user for one company, oldest first.

        Each operation's status is written back as soon as it completes. A
        failing operation never stops the pass.

        Returns:
            Counts of synced, failed and conflicted operations plus error messages.

        Raises:
            StorageError: If the pending operations cannot be read.
        """
        result = SyncResult()
        pending = self._queue.list_pending(user_id, company_id)
        logger.info(
            "Sync pass started for user %s, company %s: %d pending operations",
            user_id,
            company_id,
            len(pending),
        )

        for operation in pending:
            try:
                outcome = self.execute(operation)
            except Exception as e:
                logger.exception("Unexpected error executing sync operation %s", operation.id)
                outcome = ExecutionResult.failed(str(e) or type(e).__name__)

            if outcome.success:
                self._queue.update_status(operation.id, SyncStatus.SYNCED)
                result.synced += 1
            elif outcome.conflict:
                self._queue.update_status(
                    operation.id, SyncStatus.CONFLICT, conflict_data=outcome.conflict_data
                )
                result.conflicts += 1
            else:
                error = outcome.error or "Unknown error"
                self._queue.update_status(operation.id, SyncStatus.FAILED, error=error)
                result.failed += 1
                result.errors.append(
                    f"Operation {operation.id} ({operation.table_name}/{operation.record_id}): {error}"
                )
                logger.warning("Sync operation %s failed: %s", operation.id, error)

        result.success = result.failed == 0
        logger.info(
            "Sync pass finished for user %s, company %s: %d synced, %d failed, %d conflicts",
            user_id,
            company_id,
            result.synced,
            result.failed,
            result.conflicts,
        )
        return result
