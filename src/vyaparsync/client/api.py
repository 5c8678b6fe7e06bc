"""HTTP client for the vyaparsync server API.

This module provides:
- SyncAPIClient: HTTP client for the offline sync endpoints
- Dataclasses mirroring the server responses
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from vyaparsync.core.config import ClientConfig
from vyaparsync.core.types import Resolution, SyncAction

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class NotFoundError(APIError):
    """Resource not found."""


class ServiceUnavailableError(APIError):
    """The server's storage is unavailable."""


@dataclass
class QueuedOperation:
    """Sync operation as reported by the server."""

    id: int
    company_id: str
    table_name: str
    record_id: str
    operation: str
    status: str
    created_at: datetime
    data: dict[str, Any] | None = None
    device_id: str | None = None
    conflict_data: dict[str, Any] | None = None
    error: str | None = None
    synced_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueuedOperation:
        """Create from API response dictionary."""
        return cls(
            id=data["id"],
            company_id=data["company_id"],
            table_name=data["table_name"],
            record_id=data["record_id"],
            operation=data["operation"],
            status=data["status"],
            created_at=datetime.fromisoformat(data["created_at"]),
            data=data.get("data"),
            device_id=data.get("device_id"),
            conflict_data=data.get("conflict_data"),
            error=data.get("error"),
            synced_at=(
                datetime.fromisoformat(data["synced_at"]) if data.get("synced_at") else None
            ),
        )


@dataclass
class BatchOutcome:
    """Outcome of one item of a batch enqueue."""

    success: bool
    record_id: str
    operation_id: int | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BatchOutcome:
        """Create from API response dictionary."""
        return cls(
            success=data["success"],
            record_id=data["record_id"],
            operation_id=data.get("operation_id"),
            error=data.get("error"),
        )


@dataclass
class SyncRunSummary:
    """Result of a sync pass."""

    success: bool
    synced: int
    failed: int
    conflicts: int
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncRunSummary:
        """Create from API response dictionary."""
        return cls(
            success=data["success"],
            synced=data["synced"],
            failed=data["failed"],
            conflicts=data["conflicts"],
            errors=list(data.get("errors", [])),
        )


@dataclass
class StatusCounts:
    """Per-status operation counts."""

    pending: int
    synced: int
    failed: int
    conflicts: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusCounts:
        """Create from API response dictionary."""
        return cls(
            pending=data["pending"],
            synced=data["synced"],
            failed=data["failed"],
            conflicts=data["conflicts"],
        )


class SyncAPIClient:
    """HTTP client for the offline sync API."""

    def __init__(self, config: ClientConfig, client: httpx.Client | None = None) -> None:
        """Initialize the client.

        Args:
            config: Server URL, token and timeouts.
            client: Optional preconfigured httpx client (e.g. a test client).
        """
        self._config = config
        self._client = client or httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
        )
        self._client.headers["Authorization"] = f"Bearer {config.token}"

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> SyncAPIClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token", 401)
        if response.status_code == 404:
            raise NotFoundError(self._detail(response, "Resource not found"), 404)
        if response.status_code == 503:
            raise ServiceUnavailableError(self._detail(response, "Service unavailable"), 503)
        if response.status_code >= 400:
            raise APIError(self._detail(response, "Unknown error"), response.status_code)
        return response

    @staticmethod
    def _detail(response: httpx.Response, default: str) -> str:
        try:
            detail = response.json().get("detail", default)
        except ValueError:
            return default
        return detail if isinstance(detail, str) else str(detail)

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is healthy."""
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Queue operations ===

    def enqueue(
        self,
        company_id: str,
        table_name: str,
        record_id: str,
        operation: SyncAction | str,
        data: dict[str, Any] | None = None,
        device_id: str | None = None,
    ) -> int:
        """Queue one operation.

        Returns:
            ID of the queued operation.
        """
        response = self._handle_response(
            self._client.post(
                "/api/sync/operations",
                json={
                    "company_id": company_id,
                    "table_name": table_name,
                    "record_id": record_id,
                    "operation": SyncAction(operation).value,
                    "data": data,
                    "device_id": device_id,
                },
            )
        )
        operation_id: int = response.json()["operation_id"]
        return operation_id

    def enqueue_batch(self, operations: list[dict[str, Any]]) -> list[BatchOutcome]:
        """Queue several operations.

        Args:
            operations: Items with company_id, table_name, record_id,
                operation and optional data/device_id.
        """
        response = self._handle_response(
            self._client.post("/api/sync/batch", json={"operations": operations})
        )
        return [BatchOutcome.from_dict(item) for item in response.json()]

    def list_pending(self, company_id: str | None = None) -> list[QueuedOperation]:
        """List pending operations, oldest first."""
        params = {"company_id": company_id} if company_id else {}
        response = self._handle_response(
            self._client.get("/api/sync/operations/pending", params=params)
        )
        return [QueuedOperation.from_dict(op) for op in response.json()]

    # === Sync ===

    def run_sync(self, company_id: str) -> SyncRunSummary:
        """Run a sync pass for a company."""
        response = self._handle_response(
            self._client.post("/api/sync/sync", json={"company_id": company_id})
        )
        return SyncRunSummary.from_dict(response.json())

    def get_status(self, company_id: str | None = None) -> StatusCounts:
        """Get per-status operation counts."""
        params = {"company_id": company_id} if company_id else {}
        response = self._handle_response(self._client.get("/api/sync/status", params=params))
        return StatusCounts.from_dict(response.json())

    # === Conflicts ===

    def list_conflicts(self, company_id: str | None = None) -> list[QueuedOperation]:
        """List operations waiting for conflict resolution."""
        params = {"company_id": company_id} if company_id else {}
        response = self._handle_response(
            self._client.get("/api/sync/conflicts", params=params)
        )
        return [QueuedOperation.from_dict(op) for op in response.json()]

    def resolve(
        self,
        operation_id: int,
        resolution: Resolution | str,
        merged_data: dict[str, Any] | None = None,
    ) -> QueuedOperation:
        """Resolve a conflict.

        Returns:
            The operation after resolution.

        Raises:
            NotFoundError: If the operation doesn't exist or is not in conflict.
        """
        body: dict[str, Any] = {"resolution": Resolution(resolution).value}
        if merged_data is not None:
            body["merged_data"] = merged_data
        response = self._handle_response(
            self._client.post(f"/api/sync/conflicts/{operation_id}/resolve", json=body)
        )
        return QueuedOperation.from_dict(response.json()["operation"])
