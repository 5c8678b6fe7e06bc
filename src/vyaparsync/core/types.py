"""Shared types for vyaparsync.

This module defines the enums used by the server, the HTTP client and the CLI.
"""

from __future__ import annotations

from enum import Enum


class SyncStatus(str, Enum):
    """Lifecycle state of a queued sync operation.

    pending -> synced | failed | conflict, and conflict -> synced | failed
    through conflict resolution.
    """

    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"
    CONFLICT = "conflict"


class SyncAction(str, Enum):
    """Mutation carried by a sync operation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Resolution(str, Enum):
    """Policy used to settle a conflicted operation."""

    USE_SERVER = "use_server"
    USE_CLIENT = "use_client"
    MERGE = "merge"


class EntityType(str, Enum):
    """Entity tables that accept offline mutations.

    Values are table names; singular forms ("bill", "customer", ...) are
    accepted as aliases.
    """

    BILLS = "bills"
    CUSTOMERS = "customers"
    PRODUCTS = "products"
    PAYMENTS = "payments"

    @classmethod
    def _missing_(cls, value: object) -> EntityType | None:
        if isinstance(value, str):
            name = value.strip().lower()
            for member in cls:
                if name in (member.value, member.value[:-1]):
                    return member
        return None
