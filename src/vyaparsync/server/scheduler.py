"""Scheduler for automatic maintenance tasks.

This module provides:
- Automatic daily cleanup of expired and revoked API tokens
- A manual cleanup function for CLI usage

Sync passes are never scheduled here; they only run when a caller asks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

if TYPE_CHECKING:
    from vyaparsync.server.database import Database

logger = logging.getLogger(__name__)


def purge_expired_tokens(db: Database) -> int:
    """Delete expired and revoked tokens.

    Args:
        db: Database instance.

    Returns:
        Number of tokens deleted.
    """
    deleted = db.cleanup_expired_tokens()
    if deleted > 0:
        logger.info("Token cleanup completed: %d expired or revoked tokens deleted", deleted)
    else:
        logger.debug("Token cleanup: nothing to delete")
    return deleted


class MaintenanceScheduler:
    """Runs daily maintenance jobs in a background thread."""

    def __init__(self, db: Database, hour: int = 3, minute: int = 0) -> None:
        """Initialize the scheduler.

        Args:
            db: Database instance.
            hour: Hour to run the maintenance job (0-23).
            minute: Minute to run the maintenance job (0-59).
        """
        self._db = db
        self._hour = hour
        self._minute = minute
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def _token_cleanup_job(self) -> None:
        """Job function for scheduled token cleanup."""
        logger.info("Starting scheduled token cleanup")
        try:
            purge_expired_tokens(self._db)
        except Exception:
            logger.exception("Error during scheduled token cleanup")

    def start(self) -> None:
        """Start the scheduler."""
        if self._scheduler is not None:
            return  # Already running

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._token_cleanup_job,
            trigger=CronTrigger(hour=self._hour, minute=self._minute),
            id="token_cleanup",
            name="Daily token cleanup",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Maintenance scheduler started (daily at %02d:%02d)",
            self._hour,
            self._minute,
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Maintenance scheduler stopped")

    def run_now(self) -> int:
        """Run the token cleanup immediately (manual trigger).

        Returns:
            Number of tokens deleted.
        """
        return purge_expired_tokens(self._db)
