"""Durable queue of offline sync operations.

Operations are appended with status ``pending`` and updated in place as
they are synced, fail or conflict. Nothing is deleted: the table doubles as
an audit trail of what each device sent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from vyaparsync.core.types import SyncAction, SyncStatus
from vyaparsync.server.models import SyncOperation
from vyaparsync.server.sync.errors import InvalidOperationError, StorageError, SyncError
from vyaparsync.server.sync.types import BatchItem, BatchItemResult, SyncStatusCounts

if TYPE_CHECKING:
    from sqlalchemy import Select

    from vyaparsync.server.database import Database

logger = logging.getLogger(__name__)


def _owner_filter(stmt: Select[Any], user_id: int, company_id: str | None) -> Select[Any]:
    stmt = stmt.where(SyncOperation.user_id == user_id)
    if company_id is not None:
        stmt = stmt.where(SyncOperation.company_id == company_id)
    return stmt


class SyncQueueStore:
    """Append-and-update log of sync operations."""

    def __init__(self, db: Database) -> None:
        """Initialize the queue store.

        Args:
            db: Database providing sessions.
        """
        self._db = db

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
        """Queue a new operation with status ``pending``.

        ``table_name`` and ``record_id`` are stored as given; they are only
        checked when the operation is executed.

        Returns:
            ID of the queued operation.

        Raises:
            InvalidOperationError: If operation is not create, update or delete.
            StorageError: If the queue cannot be written.
        """
        try:
            action = SyncAction(operation)
        except ValueError as e:
            raise InvalidOperationError(str(operation)) from e

        try:
            with self._db.session() as session:
                record = SyncOperation(
                    user_id=user_id,
                    company_id=company_id,
                    table_name=table_name,
                    record_id=record_id,
                    operation=action.value,
                    data=data,
                    device_id=device_id,
                    status=SyncStatus.PENDING.value,
                )
                session.add(record)
                session.commit()
                return record.id
        except SQLAlchemyError as e:
            logger.error("Failed to add sync operation for %s/%s: %s", table_name, record_id, e)
            raise StorageError("Failed to add sync operation") from e

    def enqueue_batch(self, user_id: int, items: Iterable[BatchItem]) -> list[BatchItemResult]:
        """Queue several operations; each item succeeds or fails on its own.

        Returns:
            One result per item, in input order.
        """
        results: list[BatchItemResult] = []
        for item in items:
            try:
                operation_id = self.enqueue(
                    user_id,
                    item.company_id,
                    item.table_name,
                    item.record_id,
                    item.operation,
                    item.data,
                    item.device_id,
                )
            except SyncError as e:
                results.append(BatchItemResult(success=False, record_id=item.record_id, error=str(e)))
            else:
                results.append(
                    BatchItemResult(success=True, record_id=item.record_id, operation_id=operation_id)
                )
        return results

    def get(self, operation_id: int) -> SyncOperation | None:
        """Get an operation by ID.

        Raises:
            StorageError: If the queue cannot be read.
        """
        try:
            with self._db.session() as session:
                record = session.get(SyncOperation, operation_id)
                if record:
                    session.expunge(record)
                return record
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read sync operation {operation_id}") from e

    def _list(self, status: SyncStatus, user_id: int, company_id: str | None) -> list[SyncOperation]:
        stmt = _owner_filter(select(SyncOperation), user_id, company_id)
        stmt = stmt.where(SyncOperation.status == status.value).order_by(
            SyncOperation.created_at, SyncOperation.id
        )
        try:
            with self._db.session() as session:
                records = list(session.execute(stmt).scalars().all())
                for record in records:
                    session.expunge(record)
                return records
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list {status.value} sync operations") from e

    def list_pending(self, user_id: int, company_id: str | None = None) -> list[SyncOperation]:
        """List pending operations for a user, oldest first.

        Args:
            user_id: Owning user.
            company_id: Optional company filter.

        Raises:
            StorageError: If the queue cannot be read.
        """
        return self._list(SyncStatus.PENDING, user_id, company_id)

    def list_conflicts(self, user_id: int, company_id: str | None = None) -> list[SyncOperation]:
        """List operations waiting for conflict resolution, oldest first."""
        return self._list(SyncStatus.CONFLICT, user_id, company_id)

    def update_status(
        self,
        operation_id: int,
        status: SyncStatus,
        conflict_data: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        """Record the outcome of an operation (best effort).

        ``conflict_data`` is kept only for ``conflict`` and ``error`` only for
        ``failed``. Write failures are logged and swallowed, so a caller's
        in-memory result may disagree with what is persisted.
        """
        status = SyncStatus(status)
        try:
            with self._db.session() as session:
                record = session.get(SyncOperation, operation_id)
                if record is None:
                    logger.warning("Cannot update status of missing sync operation %s", operation_id)
                    return
                record.status = status.value
                record.conflict_data = conflict_data if status is SyncStatus.CONFLICT else None
                record.error = error if status is SyncStatus.FAILED else None
                if status is SyncStatus.SYNCED:
                    record.synced_at = datetime.now(UTC)
                session.commit()
        except SQLAlchemyError:
            logger.exception("Update sync status error for operation %s", operation_id)

    def status_counts(self, user_id: int, company_id: str | None = None) -> SyncStatusCounts:
        """Count a user's operations per status.

        Raises:
            StorageError: If the queue cannot be read.
        """
        stmt = _owner_filter(
            select(SyncOperation.status, func.count(SyncOperation.id)), user_id, company_id
        ).group_by(SyncOperation.status)
        try:
            with self._db.session() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StorageError("Failed to read sync status") from e

        by_status = {status: count for status, count in rows}
        return SyncStatusCounts(
            pending=by_status.get(SyncStatus.PENDING.value, 0),
            synced=by_status.get(SyncStatus.SYNCED.value, 0),
            failed=by_status.get(SyncStatus.FAILED.value, 0),
            conflicts=by_status.get(SyncStatus.CONFLICT.value, 0),
        )
