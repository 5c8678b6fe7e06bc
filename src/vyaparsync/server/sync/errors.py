"""Sync-specific exceptions."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for sync errors."""


class StorageError(SyncError):
    """The sync queue or an entity table could not be reached."""


class EntityNotFoundError(SyncError):
    """The record targeted by an update does not exist."""

    def __init__(self, entity: str, record_id: str) -> None:
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} not found: {record_id}")


class UnsupportedEntityError(SyncError):
    """The operation targets a table that does not accept offline mutations."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f"Unsupported table: {table_name}")


class DuplicateRecordError(SyncError):
    """A create targets a record id that already exists."""

    def __init__(self, entity: str, record_id: str) -> None:
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} already exists: {record_id}")


class InvalidPayloadError(SyncError):
    """The payload cannot be applied to the target entity."""


class InvalidOperationError(SyncError):
    """The operation is not one of create, update or delete."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Invalid operation: {operation}")
