"""Tests for the sync queue store."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from vyaparsync.core.types import SyncStatus
from vyaparsync.server.database import Database
from vyaparsync.server.models import Company, User
from vyaparsync.server.sync import (
    BatchItem,
    InvalidOperationError,
    StorageError,
    SyncQueueStore,
)


def storage_down() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("disk I/O error"))


@pytest.fixture
def queue(db: Database) -> SyncQueueStore:
    """Create a queue store over the test database."""
    return SyncQueueStore(db)


class TestEnqueue:
    """Tests for queueing operations."""

    def test_enqueue_pending(self, queue: SyncQueueStore, user: User, company: Company) -> None:
        """Should store the operation as pending with its payload."""
        op_id = queue.enqueue(
            user.id, company.id, "bills", "B1", "create", {"amount": 10}, device_id="phone-1"
        )

        operation = queue.get(op_id)
        assert operation is not None
        assert operation.status == SyncStatus.PENDING.value
        assert operation.operation == "create"
        assert operation.data == {"amount": 10}
        assert operation.device_id == "phone-1"
        assert operation.conflict_data is None
        assert operation.synced_at is None

    def test_ids_increase(self, queue: SyncQueueStore, user: User, company: Company) -> None:
        """Should assign increasing ids."""
        first = queue.enqueue(user.id, company.id, "bills", "B1", "create")
        second = queue.enqueue(user.id, company.id, "bills", "B2", "create")

        assert second > first

    def test_rejects_unknown_operation(
        self, queue: SyncQueueStore, user: User, company: Company
    ) -> None:
        """Should reject operations other than create, update and delete."""
        with pytest.raises(InvalidOperationError):
            queue.enqueue(user.id, company.id, "bills", "B1", "upsert")

    def test_table_not_checked(self, queue: SyncQueueStore, user: User, company: Company) -> None:
        """Should accept any table name; it is checked at execution."""
        op_id = queue.enqueue(user.id, company.id, "invoices", "I1", "delete")

        assert queue.get(op_id).table_name == "invoices"

    def test_storage_error(
        self, db: Database, queue: SyncQueueStore, user: User, company: Company
    ) -> None:
        """Should raise StorageError when the queue cannot be written."""
        with (
            patch.object(db, "session", side_effect=storage_down()),
            pytest.raises(StorageError, match="Failed to add sync operation"),
        ):
            queue.enqueue(user.id, company.id, "bills", "B1", "create")


class TestEnqueueBatch:
    """Tests for batch enqueue."""

    def test_items_independent(self, queue: SyncQueueStore, user: User, company: Company) -> None:
        """Should report each item separately and keep valid ones."""
        results = queue.enqueue_batch(
            user.id,
            [
                BatchItem(company.id, "bills", "B1", "create", {"amount": 1}),
                BatchItem(company.id, "bills", "B2", "merge"),
                BatchItem(company.id, "bills", "B3", "delete"),
            ],
        )

        assert [r.success for r in results] == [True, False, True]
        assert [r.record_id for r in results] == ["B1", "B2", "B3"]
        assert results[1].operation_id is None
        assert "merge" in results[1].error
        assert len(queue.list_pending(user.id, company.id)) == 2


class TestListing:
    """Tests for pending and conflict listings."""

    def test_pending_fifo(self, queue: SyncQueueStore, user: User, company: Company) -> None:
        """Should list pending operations oldest first."""
        ids = [queue.enqueue(user.id, company.id, "bills", f"B{i}", "create") for i in range(5)]

        pending = queue.list_pending(user.id, company.id)

        assert [op.id for op in pending] == ids

    def test_pending_excludes_settled(
        self, queue: SyncQueueStore, user: User, company: Company
    ) -> None:
        """Should only list operations still pending."""
        first = queue.enqueue(user.id, company.id, "bills", "B1", "create")
        second = queue.enqueue(user.id, company.id, "bills", "B2", "create")
        queue.update_status(first, SyncStatus.SYNCED)

        assert [op.id for op in queue.list_pending(user.id)] == [second]

    def test_conflicts(self, queue: SyncQueueStore, user: User, company: Company) -> None:
        """Should list conflicted operations with their server snapshot."""
        op_id = queue.enqueue(user.id, company.id, "bills", "B1", "update")
        queue.update_status(op_id, SyncStatus.CONFLICT, conflict_data={"id": "B1"})

        conflicts = queue.list_conflicts(user.id, company.id)

        assert [op.id for op in conflicts] == [op_id]
        assert conflicts[0].conflict_data == {"id": "B1"}

    def test_list_storage_error(self, db: Database, queue: SyncQueueStore, user: User) -> None:
        """Should raise StorageError when the queue cannot be read."""
        with (
            patch.object(db, "session", side_effect=storage_down()),
            pytest.raises(StorageError),
        ):
            queue.list_pending(user.id)


class TestUpdateStatus:
    """Tests for recording outcomes."""

    def test_synced_sets_synced_at(
        self, queue: SyncQueueStore, user: User, company: Company
    ) -> None:
        """Should timestamp synced operations."""
        op_id = queue.enqueue(user.id, company.id, "bills", "B1", "create")

        queue.update_status(op_id, SyncStatus.SYNCED)

        operation = queue.get(op_id)
        assert operation.status == "synced"
        assert operation.synced_at is not None

    def test_error_only_kept_for_failed(
        self, queue: SyncQueueStore, user: User, company: Company
    ) -> None:
        """Should drop error and conflict data that don't match the status."""
        op_id = queue.enqueue(user.id, company.id, "bills", "B1", "update")

        queue.update_status(op_id, SyncStatus.SYNCED, conflict_data={"id": "B1"}, error="x")

        operation = queue.get(op_id)
        assert operation.conflict_data is None
        assert operation.error is None

    def test_conflict_then_failed_clears_conflict_data(
        self, queue: SyncQueueStore, user: User, company: Company
    ) -> None:
        """Should clear the server snapshot when a conflict ends in failure."""
        op_id = queue.enqueue(user.id, company.id, "bills", "B1", "update")
        queue.update_status(op_id, SyncStatus.CONFLICT, conflict_data={"id": "B1"})

        queue.update_status(op_id, "failed", error="Bill not found: B1")

        operation = queue.get(op_id)
        assert operation.status == "failed"
        assert operation.error == "Bill not found: B1"
        assert operation.conflict_data is None

    def test_missing_operation_ignored(self, queue: SyncQueueStore) -> None:
        """Should do nothing for unknown operations."""
        queue.update_status(9999, SyncStatus.SYNCED)

    def test_storage_error_swallowed(
        self, db: Database, queue: SyncQueueStore, user: User, company: Company
    ) -> None:
        """Should log and swallow write failures."""
        op_id = queue.enqueue(user.id, company.id, "bills", "B1", "create")

        with patch.object(db, "session", side_effect=storage_down()):
            queue.update_status(op_id, SyncStatus.SYNCED)

        assert queue.get(op_id).status == "pending"


class TestStatusCounts:
    """Tests for per-status counts."""

    def test_empty(self, queue: SyncQueueStore, user: User) -> None:
        """Should report zeros for a user with no operations."""
        assert queue.status_counts(user.id).to_dict() == {
            "pending": 0,
            "synced": 0,
            "failed": 0,
            "conflicts": 0,
        }

    def test_company_filter(
        self, db: Database, queue: SyncQueueStore, user: User, company: Company
    ) -> None:
        """Should count only the requested company when given."""
        other = db.create_company("Second Shop", user.id)
        queue.enqueue(user.id, company.id, "bills", "B1", "create")
        queue.enqueue(user.id, other.id, "bills", "B2", "create")

        assert queue.status_counts(user.id, company.id).pending == 1
        assert queue.status_counts(user.id).pending == 2

    def test_storage_error(self, db: Database, queue: SyncQueueStore, user: User) -> None:
        """Should raise StorageError when counts cannot be read."""
        with (
            patch.object(db, "session", side_effect=storage_down()),
            pytest.raises(StorageError, match="Failed to read sync status"),
        ):
            queue.status_counts(user.id)
