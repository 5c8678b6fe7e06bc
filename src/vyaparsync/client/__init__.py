"""Client module - HTTP client for the offline sync API."""

from vyaparsync.client.api import (
    APIError,
    AuthenticationError,
    BatchOutcome,
    NotFoundError,
    QueuedOperation,
    ServiceUnavailableError,
    StatusCounts,
    SyncAPIClient,
    SyncRunSummary,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "BatchOutcome",
    "NotFoundError",
    "QueuedOperation",
    "ServiceUnavailableError",
    "StatusCounts",
    "SyncAPIClient",
    "SyncRunSummary",
]
