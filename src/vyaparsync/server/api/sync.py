"""Offline sync API routes.

Clients queue mutations made while offline, trigger a sync pass, inspect
conflicts and resolve them.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from vyaparsync.server.api.deps import get_current_token, get_db, get_sync_service, require_company
from vyaparsync.server.database import Database
from vyaparsync.server.models import Token
from vyaparsync.server.schemas import (
    ResolveConflictRequest,
    ResolveConflictResponse,
    SyncBatchItemResponse,
    SyncBatchRequest,
    SyncOperationCreateRequest,
    SyncOperationCreateResponse,
    SyncOperationResponse,
    SyncRunRequest,
    SyncRunResponse,
    SyncStatusResponse,
    batch_result_to_response,
    operation_to_response,
)
from vyaparsync.server.sync import SyncService

router = APIRouter(prefix="/api/sync", tags=["sync"])


@router.post(
    "/operations",
    response_model=SyncOperationCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_operation(
    request: SyncOperationCreateRequest,
    db: Database = Depends(get_db),
    service: SyncService = Depends(get_sync_service),
    auth: Token = Depends(get_current_token),
) -> SyncOperationCreateResponse:
    """Queue one offline operation."""
    require_company(db, auth.user_id, request.company_id)
    operation_id = service.enqueue(
        auth.user_id,
        request.company_id,
        request.table_name,
        request.record_id,
        request.operation,
        request.data,
        request.device_id,
    )
    return SyncOperationCreateResponse(operation_id=operation_id)


@router.post("/batch", response_model=list[SyncBatchItemResponse])
def add_batch(
    request: SyncBatchRequest,
    db: Database = Depends(get_db),
    service: SyncService = Depends(get_sync_service),
    auth: Token = Depends(get_current_token),
) -> list[SyncBatchItemResponse]:
    """Queue several operations; each item reports its own outcome."""
    for company_id in {op.company_id for op in request.operations}:
        require_company(db, auth.user_id, company_id)
    results = service.enqueue_batch(
        auth.user_id, [op.to_batch_item() for op in request.operations]
    )
    return [batch_result_to_response(r) for r in results]


@router.get("/operations/pending", response_model=list[SyncOperationResponse])
def list_pending(
    company_id: str | None = Query(default=None),
    db: Database = Depends(get_db),
    service: SyncService = Depends(get_sync_service),
    auth: Token = Depends(get_current_token),
) -> list[SyncOperationResponse]:
    """List pending operations, oldest first."""
    if company_id is not None:
        require_company(db, auth.user_id, company_id)
    operations = service.list_pending(auth.user_id, company_id)
    return [operation_to_response(op) for op in operations]


@router.post("/sync", response_model=SyncRunResponse)
def run_sync(
    request: SyncRunRequest,
    db: Database = Depends(get_db),
    service: SyncService = Depends(get_sync_service),
    auth: Token = Depends(get_current_token),
) -> SyncRunResponse:
    """Apply all pending operations for a company."""
    require_company(db, auth.user_id, request.company_id)
    result = service.run_sync(auth.user_id, request.company_id)
    return SyncRunResponse(
        status="success" if result.success else "partial",
        success=result.success,
        synced=result.synced,
        failed=result.failed,
        conflicts=result.conflicts,
        errors=result.errors,
    )


@router.get("/status", response_model=SyncStatusResponse)
def get_status(
    company_id: str | None = Query(default=None),
    db: Database = Depends(get_db),
    service: SyncService = Depends(get_sync_service),
    auth: Token = Depends(get_current_token),
) -> SyncStatusResponse:
    """Count operations per status."""
    if company_id is not None:
        require_company(db, auth.user_id, company_id)
    counts = service.get_status(auth.user_id, company_id)
    return SyncStatusResponse(**counts.to_dict())


@router.get("/conflicts", response_model=list[SyncOperationResponse])
def list_conflicts(
    company_id: str | None = Query(default=None),
    db: Database = Depends(get_db),
    service: SyncService = Depends(get_sync_service),
    auth: Token = Depends(get_current_token),
) -> list[SyncOperationResponse]:
    """List operations waiting for conflict resolution, with server snapshots."""
    if company_id is not None:
        require_company(db, auth.user_id, company_id)
    operations = service.list_conflicts(auth.user_id, company_id)
    return [operation_to_response(op) for op in operations]


@router.post("/conflicts/{operation_id}/resolve", response_model=ResolveConflictResponse)
def resolve_conflict(
    operation_id: int,
    request: ResolveConflictRequest,
    service: SyncService = Depends(get_sync_service),
    auth: Token = Depends(get_current_token),
) -> ResolveConflictResponse:
    """Resolve a conflicted operation."""
    resolved = service.resolve(
        operation_id,
        request.resolution,
        request.merged_data,
        user_id=auth.user_id,
    )
    if not resolved:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sync operation not found or not in conflict state",
        )
    operation = service.get_operation(operation_id)
    if operation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sync operation not found: {operation_id}",
        )
    return ResolveConflictResponse(operation=operation_to_response(operation))
