"""Shared fixtures for server tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from vyaparsync.server.database import Database
from vyaparsync.server.models import Company, User
from vyaparsync.server.sync import SyncService


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def user(db: Database) -> User:
    """Create a test user."""
    return db.create_user("Asha Rao", "asha@example.com")


@pytest.fixture
def company(db: Database, user: User) -> Company:
    """Create a company owned by the test user."""
    return db.create_company("Rao Traders", user.id)


@pytest.fixture
def service(db: Database) -> SyncService:
    """Create a sync service over the test database."""
    return SyncService(db)
