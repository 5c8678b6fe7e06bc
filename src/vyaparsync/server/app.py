"""FastAPI application for the vyaparsync server.

This module creates and configures the FastAPI application with the
offline sync REST API.

Usage:
    uvicorn --factory vyaparsync.server.app:app_factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from vyaparsync import __version__
from vyaparsync.core.config import ServerSettings
from vyaparsync.server.api.router import router as api_router
from vyaparsync.server.database import Database
from vyaparsync.server.scheduler import MaintenanceScheduler
from vyaparsync.server.sync import StorageError, SyncService

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path) -> None:
    """Configure logging to output to both file and stdout.

    Calling it again is a no-op, so app factories can call it freely.

    Args:
        log_path: Path to the log file.
    """
    root_logger = logging.getLogger("vyaparsync")
    if root_logger.handlers:
        return

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)
    root_logger.setLevel(logging.INFO)

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # File handler
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(uvicorn_name).addHandler(file_handler)


def create_app(
    db: Database,
    settings: ServerSettings | None = None,
    scheduler: MaintenanceScheduler | None = None,
) -> FastAPI:
    """Create FastAPI application with a custom database.

    Tests pass an isolated database and no scheduler.

    Args:
        db: Database instance.
        settings: Server settings (defaults are used when omitted).
        scheduler: Optional maintenance scheduler started with the app.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or ServerSettings(db_path=db.path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("Vyapar Sync Server Starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db.path)
        logger.info("  Logs:     %s", settings.log_path.absolute())
        logger.info("=" * 60)
        if scheduler is not None:
            scheduler.start()

        yield

        if scheduler is not None:
            scheduler.stop()
        logger.info("Vyapar Sync Server shutting down")

    application = FastAPI(
        title="Vyapar Sync Server",
        description="Offline sync and conflict resolution for Vyapar business data",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.db = db
    application.state.settings = settings
    application.state.sync_service = SyncService(db)

    @application.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage unavailable on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
        )

    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    settings = ServerSettings.from_env()
    setup_logging(settings.log_path)
    db = Database(settings.db_path)
    return create_app(
        db=db,
        settings=settings,
        scheduler=MaintenanceScheduler(
            db,
            hour=settings.maintenance_hour,
            minute=settings.maintenance_minute,
        ),
    )
