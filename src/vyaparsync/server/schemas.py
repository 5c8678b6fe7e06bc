"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from vyaparsync.core.types import Resolution, SyncAction
from vyaparsync.server.models import SyncOperation
from vyaparsync.server.sync.types import BatchItem, BatchItemResult

# === Sync operation schemas ===


class SyncOperationCreateRequest(BaseModel):
    """Request body for queueing one sync operation."""

    company_id: str
    table_name: str
    record_id: str
    operation: SyncAction
    data: dict[str, Any] | None = None
    device_id: str | None = None

    def to_batch_item(self) -> BatchItem:
        """Convert to the sync layer's batch item."""
        return BatchItem(
            company_id=self.company_id,
            table_name=self.table_name,
            record_id=self.record_id,
            operation=self.operation.value,
            data=self.data,
            device_id=self.device_id,
        )


class SyncOperationCreateResponse(BaseModel):
    """Response for a queued operation."""

    operation_id: int


class SyncBatchRequest(BaseModel):
    """Request body for queueing several operations."""

    operations: list[SyncOperationCreateRequest] = Field(min_length=1)


class SyncBatchItemResponse(BaseModel):
    """Outcome of one batch item."""

    success: bool
    record_id: str
    operation_id: int | None = None
    error: str | None = None


class SyncOperationResponse(BaseModel):
    """Queued operation in responses."""

    id: int
    company_id: str
    table_name: str
    record_id: str
    operation: str
    data: dict[str, Any] | None
    status: str
    device_id: str | None
    conflict_data: dict[str, Any] | None
    error: str | None
    created_at: str
    synced_at: str | None


# === Sync pass schemas ===


class SyncRunRequest(BaseModel):
    """Request body for running a sync pass."""

    company_id: str


class SyncRunResponse(BaseModel):
    """Result of a sync pass.

    ``status`` is "success" when nothing failed and "partial" otherwise.
    """

    status: str
    success: bool
    synced: int
    failed: int
    conflicts: int
    errors: list[str]


class SyncStatusResponse(BaseModel):
    """Per-status operation counts."""

    pending: int
    synced: int
    failed: int
    conflicts: int


# === Conflict schemas ===


class ResolveConflictRequest(BaseModel):
    """Request body for resolving a conflict."""

    resolution: Resolution
    merged_data: dict[str, Any] | None = None


class ResolveConflictResponse(BaseModel):
    """Response for a resolved conflict."""

    operation: SyncOperationResponse


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Converters ===


def operation_to_response(operation: SyncOperation) -> SyncOperationResponse:
    """Convert SyncOperation to response model."""
    return SyncOperationResponse(
        id=operation.id,
        company_id=operation.company_id,
        table_name=operation.table_name,
        record_id=operation.record_id,
        operation=operation.operation,
        data=operation.data,
        status=operation.status,
        device_id=operation.device_id,
        conflict_data=operation.conflict_data,
        error=operation.error,
        created_at=operation.created_at.isoformat(),
        synced_at=operation.synced_at.isoformat() if operation.synced_at else None,
    )


def batch_result_to_response(result: BatchItemResult) -> SyncBatchItemResponse:
    """Convert BatchItemResult to response model."""
    return SyncBatchItemResponse(
        success=result.success,
        record_id=result.record_id,
        operation_id=result.operation_id,
        error=result.error,
    )
