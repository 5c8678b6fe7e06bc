"""Shared configuration classes for vyaparsync.

This module defines configuration used by the server, the CLI and the HTTP client.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "VYAPAR_"


def _env(name: str, default: str) -> str:
    return os.environ.get(ENV_PREFIX + name, default)


@dataclass
class ServerSettings:
    """Server-side settings, usually read from ``VYAPAR_*`` environment variables.

    Attributes:
        db_path: Path to the SQLite database file.
        log_path: Path to the server log file.
        token_ttl_days: Lifetime of newly issued API tokens (0 = never expire).
        maintenance_hour: Hour (0-23) at which the daily maintenance job runs.
        maintenance_minute: Minute (0-59) at which the daily maintenance job runs.
    """

    db_path: Path = Path("vyapar.db")
    log_path: Path = Path("vyapar-server.log")
    token_ttl_days: int = 0
    maintenance_hour: int = 3
    maintenance_minute: int = 0

    def __post_init__(self) -> None:
        """Validate values and coerce paths."""
        self.db_path = Path(self.db_path)
        self.log_path = Path(self.log_path)
        if self.token_ttl_days < 0:
            raise ValueError("token_ttl_days must be >= 0")
        if not 0 <= self.maintenance_hour <= 23:
            raise ValueError("maintenance_hour must be between 0 and 23")
        if not 0 <= self.maintenance_minute <= 59:
            raise ValueError("maintenance_minute must be between 0 and 59")

    @classmethod
    def from_env(cls) -> ServerSettings:
        """Build settings from environment variables with defaults."""
        return cls(
            db_path=Path(_env("DB_PATH", "vyapar.db")),
            log_path=Path(_env("LOG_PATH", "vyapar-server.log")),
            token_ttl_days=int(_env("TOKEN_TTL_DAYS", "0")),
            maintenance_hour=int(_env("MAINTENANCE_HOUR", "3")),
            maintenance_minute=int(_env("MAINTENANCE_MINUTE", "0")),
        )


@dataclass
class ClientConfig:
    """Configuration for connecting to a vyaparsync server.

    Attributes:
        server_url: Base URL of the server (e.g., "https://api.example.com").
        token: Bearer token issued to the user.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if the server is reached over HTTPS."""
        return self.server_url.startswith("https://")
