"""Offline sync: queued mutations, conflict detection and resolution.

Components:
- SyncQueueStore: durable log of queued operations
- TimestampConflictDetector: decides whether an update is stale
- EntityStore / EntityHandler: per-entity create/update/delete
- SyncExecutor: applies operations and runs sync passes
- ConflictResolver: settles conflicted operations
- SyncService: facade wiring the above together
"""

from vyaparsync.server.sync.detector import TimestampConflictDetector, parse_timestamp
from vyaparsync.server.sync.entities import EntityStore, build_entity_stores
from vyaparsync.server.sync.errors import (
    DuplicateRecordError,
    EntityNotFoundError,
    InvalidOperationError,
    InvalidPayloadError,
    StorageError,
    SyncError,
    UnsupportedEntityError,
)
from vyaparsync.server.sync.executor import SyncExecutor
from vyaparsync.server.sync.handlers import EntityHandler
from vyaparsync.server.sync.queue import SyncQueueStore
from vyaparsync.server.sync.resolver import ConflictResolver
from vyaparsync.server.sync.service import SyncService
from vyaparsync.server.sync.types import (
    BatchItem,
    BatchItemResult,
    ExecutionResult,
    SyncResult,
    SyncStatusCounts,
)

__all__ = [
    # Components
    "ConflictResolver",
    "EntityHandler",
    "EntityStore",
    "SyncExecutor",
    "SyncQueueStore",
    "SyncService",
    "TimestampConflictDetector",
    "build_entity_stores",
    "parse_timestamp",
    # Errors
    "DuplicateRecordError",
    "EntityNotFoundError",
    "InvalidOperationError",
    "InvalidPayloadError",
    "StorageError",
    "SyncError",
    "UnsupportedEntityError",
    # Types
    "BatchItem",
    "BatchItemResult",
    "ExecutionResult",
    "SyncResult",
    "SyncStatusCounts",
]
