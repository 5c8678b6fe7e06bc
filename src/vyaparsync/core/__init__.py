"""Core module - Shared configuration and types."""

from vyaparsync.core.config import ClientConfig, ServerSettings
from vyaparsync.core.types import EntityType, Resolution, SyncAction, SyncStatus

__all__ = [
    # Config
    "ClientConfig",
    "ServerSettings",
    # Types
    "EntityType",
    "Resolution",
    "SyncAction",
    "SyncStatus",
]
