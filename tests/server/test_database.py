"""Tests for the server database."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError

from vyaparsync.server.database import Database, hash_token
from vyaparsync.server.models import User


class TestDatabaseCreation:
    """Tests for database initialization."""

    def test_creates_db_file(self, tmp_path: Path) -> None:
        """Database should create SQLite file."""
        db_path = tmp_path / "nested" / "test.db"
        db = Database(db_path)
        assert db_path.exists()
        assert db.path == db_path
        db.close()

    def test_uses_wal_mode(self, db: Database) -> None:
        """Database should use WAL mode for concurrency."""
        with db._engine.connect() as conn:
            result = conn.exec_driver_sql("PRAGMA journal_mode").fetchone()
        assert result is not None
        assert result[0].lower() == "wal"

    def test_enforces_foreign_keys(self, db: Database) -> None:
        """Every connection should enforce foreign keys."""
        with db._engine.connect() as conn:
            result = conn.exec_driver_sql("PRAGMA foreign_keys").fetchone()
        assert result[0] == 1


class TestUserOperations:
    """Tests for user management."""

    def test_create_user(self, db: Database) -> None:
        """Should create a user with an id."""
        user = db.create_user("Asha Rao", "asha@example.com")

        assert user.id is not None
        assert user.name == "Asha Rao"

    def test_get_user(self, db: Database, user: User) -> None:
        """Should find users by id and email."""
        assert db.get_user(user.id).email == "asha@example.com"
        assert db.get_user_by_email("asha@example.com").id == user.id
        assert db.get_user(9999) is None
        assert db.get_user_by_email("nobody@example.com") is None

    def test_email_unique(self, db: Database, user: User) -> None:
        """Should reject duplicate emails."""
        with pytest.raises(IntegrityError):
            db.create_user("Someone Else", "asha@example.com")


class TestCompanyOperations:
    """Tests for company management."""

    def test_create_company(self, db: Database, user: User) -> None:
        """Should create a company with a generated id."""
        company = db.create_company("Rao Traders", user.id, gstin="27AAAPL1234C1ZV")

        assert len(company.id) == 36
        assert company.owner_id == user.id
        assert db.get_company(company.id).gstin == "27AAAPL1234C1ZV"

    def test_get_user_company(self, db: Database, user: User) -> None:
        """Should only return companies owned by the user."""
        company = db.create_company("Rao Traders", user.id)
        other = db.create_user("Ravi", "ravi@example.com")

        assert db.get_user_company(user.id, company.id) is not None
        assert db.get_user_company(other.id, company.id) is None
        assert db.get_user_company(user.id, "missing") is None

    def test_list_companies(self, db: Database, user: User) -> None:
        """Should list a user's companies by name."""
        db.create_company("Zen Mart", user.id)
        db.create_company("Apex Foods", user.id)

        assert [c.name for c in db.list_companies(user.id)] == ["Apex Foods", "Zen Mart"]


class TestTokenOperations:
    """Tests for token management."""

    def test_create_token(self, db: Database, user: User) -> None:
        """Should create a prefixed token and store only its hash."""
        raw_token, token = db.create_token(user.id)

        assert raw_token.startswith("vy_")
        assert token.token_hash == hash_token(raw_token)
        assert token.expires_at is None

    def test_validate_token(self, db: Database, user: User) -> None:
        """Should validate a fresh token."""
        raw_token, token = db.create_token(user.id)

        validated = db.validate_token(raw_token)

        assert validated is not None
        assert validated.id == token.id
        assert validated.user_id == user.id

    def test_invalid_token_returns_none(self, db: Database) -> None:
        """Should not validate unknown tokens."""
        assert db.validate_token("vy_invalid") is None

    def test_expired_token_returns_none(self, db: Database, user: User) -> None:
        """Should not validate expired tokens."""
        raw_token, _ = db.create_token(user.id, expires_in=timedelta(seconds=-1))

        assert db.validate_token(raw_token) is None

    def test_revoke_token(self, db: Database, user: User) -> None:
        """Should not validate revoked tokens."""
        raw_token, token = db.create_token(user.id)
        db.revoke_token(token.id)

        assert db.validate_token(raw_token) is None

    def test_cleanup_expired_tokens(self, db: Database, user: User) -> None:
        """Should delete expired and revoked tokens and keep the rest."""
        db.create_token(user.id, expires_in=timedelta(seconds=-1))
        _, revoked = db.create_token(user.id)
        db.revoke_token(revoked.id)
        raw_token, _ = db.create_token(user.id)

        assert db.cleanup_expired_tokens() == 2
        assert db.validate_token(raw_token) is not None

    def test_token_hash_function(self) -> None:
        """Hash should be deterministic SHA-256 hex."""
        assert hash_token("abc") == hash_token("abc")
        assert hash_token("abc") != hash_token("abd")
        assert len(hash_token("abc")) == 64
