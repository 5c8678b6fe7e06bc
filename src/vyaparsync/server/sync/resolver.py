"""Conflict resolution for operations in ``conflict`` status.

Policies:
- use_server: keep the server record, discard the client change
- use_client: re-apply the original operation without conflict detection
- merge: apply caller-supplied merged data as an update, without detection

The record is not re-checked between detection and resolution, so a
concurrent writer in between is overwritten.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from vyaparsync.core.types import Resolution, SyncAction, SyncStatus
from vyaparsync.server.models import SyncOperation

if TYPE_CHECKING:
    from vyaparsync.server.sync.executor import SyncExecutor
    from vyaparsync.server.sync.queue import SyncQueueStore

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Settles conflicted operations and re-drives execution."""

    def __init__(self, queue: SyncQueueStore, executor: SyncExecutor) -> None:
        self._queue = queue
        self._executor = executor

    def resolve(
        self,
        operation_id: int,
        resolution: Resolution | str,
        merged_data: dict[str, Any] | None = None,
        user_id: int | None = None,
    ) -> bool:
        """Resolve a conflicted operation.

        Resolving a missing operation, one that is not in conflict, or one
        owned by another user is a no-op, as is ``merge`` without
        ``merged_data``.

        Args:
            operation_id: Operation to resolve.
            resolution: Resolution policy.
            merged_data: Payload to apply for ``merge``.
            user_id: If given, the operation must belong to this user.

        Returns:
            True if a policy was applied (the operation's status shows whether
            re-execution succeeded), False if nothing was done.

        Raises:
            StorageError: If the operation cannot be read.
        """
        try:
            policy = Resolution(resolution)
        except ValueError:
            logger.warning("Unknown conflict resolution %r for operation %s", resolution, operation_id)
            return False

        record = self._queue.get(operation_id)
        if record is None or record.status != SyncStatus.CONFLICT.value:
            return False
        if user_id is not None and record.user_id != user_id:
            return False

        if policy is Resolution.USE_SERVER:
            self._queue.update_status(operation_id, SyncStatus.SYNCED)
            logger.info("Conflict on operation %s resolved with server data", operation_id)
            return True

        if policy is Resolution.MERGE:
            if merged_data is None:
                return False
            retry = _copy_operation(record, SyncAction.UPDATE.value, merged_data)
        else:
            retry = _copy_operation(record, record.operation, record.data)

        outcome = self._executor.execute(retry, force=True)
        if outcome.success:
            self._queue.update_status(operation_id, SyncStatus.SYNCED)
        else:
            self._queue.update_status(operation_id, SyncStatus.FAILED, error=outcome.error)
        logger.info(
            "Conflict on operation %s resolved with %s: %s",
            operation_id,
            policy.value,
            "synced" if outcome.success else f"failed ({outcome.error})",
        )
        return True


def _copy_operation(
    record: SyncOperation,
    operation: str,
    data: dict[str, Any] | None,
) -> SyncOperation:
    """Build a transient operation to re-execute; it is never persisted."""
    return SyncOperation(
        id=record.id,
        user_id=record.user_id,
        company_id=record.company_id,
        table_name=record.table_name,
        record_id=record.record_id,
        operation=operation,
        data=data,
        status=SyncStatus.PENDING.value,
        device_id=record.device_id,
    )
