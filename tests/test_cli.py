"""Tests for CLI commands."""

from __future__ import annotations

import re
from collections.abc import Generator
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from vyaparsync.cli import cli
from vyaparsync.core.types import EntityType
from vyaparsync.server.database import Database
from vyaparsync.server.sync import StorageError, SyncService, parse_timestamp


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "vyapar.db"


@pytest.fixture
def seeded(runner: CliRunner, db_path: Path) -> Generator[tuple[Database, int, str], None, None]:
    """Create a user and company through the CLI and open the database."""
    result = runner.invoke(
        cli, ["create-user", "Asha Rao", "--email", "asha@example.com", "--db-path", str(db_path)]
    )
    assert result.exit_code == 0, result.output
    result = runner.invoke(
        cli,
        ["create-company", "Rao Traders", "--owner-email", "asha@example.com", "--db-path", str(db_path)],
    )
    assert result.exit_code == 0, result.output
    match = re.search(r"Company ID: (\S+)", result.output)
    assert match is not None

    db = Database(db_path)
    user = db.get_user_by_email("asha@example.com")
    yield db, user.id, match.group(1)
    db.close()


class TestAdminCommands:
    """Tests for account administration commands."""

    def test_create_user_prints_token(self, runner: CliRunner, db_path: Path) -> None:
        """Should create the database and print a usable token."""
        result = runner.invoke(
            cli, ["create-user", "Asha Rao", "--email", "asha@example.com", "--db-path", str(db_path)]
        )

        assert result.exit_code == 0
        assert "User created: Asha Rao" in result.output
        match = re.search(r"Token: (vy_\S+)", result.output)
        assert match is not None
        db = Database(db_path)
        try:
            assert db.validate_token(match.group(1)) is not None
        finally:
            db.close()

    def test_create_user_duplicate_email(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should fail on a duplicate email."""
        result = runner.invoke(
            cli, ["create-user", "Other", "--email", "asha@example.com", "--db-path", str(db_path)]
        )

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_create_company_unknown_owner(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should fail when the owner doesn't exist."""
        result = runner.invoke(
            cli,
            ["create-company", "Shop", "--owner-email", "nobody@example.com", "--db-path", str(db_path)],
        )

        assert result.exit_code == 1
        assert "No user with email" in result.output

    def test_create_token_with_ttl(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should issue an expiring token for an existing user."""
        db, _, _ = seeded

        result = runner.invoke(
            cli,
            ["create-token", "--email", "asha@example.com", "--ttl-days", "7", "--db-path", str(db_path)],
        )

        assert result.exit_code == 0
        match = re.search(r"Token: (vy_\S+)", result.output)
        assert match is not None
        token = db.validate_token(match.group(1))
        assert token is not None
        assert token.expires_at is not None

    def test_missing_database(self, runner: CliRunner, tmp_path: Path) -> None:
        """Should refuse to run against a database that doesn't exist."""
        result = runner.invoke(
            cli, ["sync", "status", "-u", "asha@example.com", "--db-path", str(tmp_path / "none.db")]
        )

        assert result.exit_code == 1
        assert "Database not found" in result.output

    def test_cleanup_tokens(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should report how many tokens were deleted."""
        db, user_id, _ = seeded
        db.create_token(user_id, expires_in=timedelta(seconds=-1))

        result = runner.invoke(cli, ["cleanup-tokens", "--db-path", str(db_path)])

        assert result.exit_code == 0
        assert "Deleted 1 tokens." in result.output


class TestSyncCommands:
    """Tests for 'vyaparsync sync' commands."""

    def test_run_and_status(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should apply pending operations and show counts."""
        db, user_id, company_id = seeded
        SyncService(db).enqueue(user_id, company_id, "customers", "C1", "create", {"name": "Meera"})

        result = runner.invoke(
            cli,
            ["sync", "run", "-u", "asha@example.com", "-c", company_id, "--db-path", str(db_path)],
        )
        assert result.exit_code == 0, result.output
        assert "Synced: 1, failed: 0, conflicts: 0" in result.output

        result = runner.invoke(
            cli, ["sync", "status", "-u", "asha@example.com", "--db-path", str(db_path)]
        )
        assert result.exit_code == 0
        assert re.search(r"synced\s+1", result.output)

    def test_run_with_failures(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should exit with status 2 when an operation fails."""
        db, user_id, company_id = seeded
        SyncService(db).enqueue(user_id, company_id, "bills", "B404", "update", {"notes": "x"})

        result = runner.invoke(
            cli,
            ["sync", "run", "-u", "asha@example.com", "-c", company_id, "--db-path", str(db_path)],
        )

        assert result.exit_code == 2
        assert "Bill not found: B404" in result.output

    def test_conflicts_and_resolve(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should list a conflict and resolve it with the client's data."""
        db, user_id, company_id = seeded
        service = SyncService(db)
        product = service.store(EntityType.PRODUCTS).insert("P1", {"name": "Soap"}, company_id)
        base = parse_timestamp(product["updated_at"]) - timedelta(hours=1)
        op_id = service.enqueue(
            user_id, company_id, "products", "P1", "update", {"stock": 9, "updatedAt": base.isoformat()}
        )
        service.run_sync(user_id, company_id)

        result = runner.invoke(
            cli, ["sync", "conflicts", "-u", "asha@example.com", "--db-path", str(db_path)]
        )
        assert result.exit_code == 0
        assert f"#{op_id} update products/P1" in result.output

        result = runner.invoke(
            cli, ["sync", "resolve", str(op_id), "-r", "use_client", "--db-path", str(db_path)]
        )
        assert result.exit_code == 0, result.output
        assert f"Operation {op_id} resolved with use_client: synced" in result.output
        assert service.store(EntityType.PRODUCTS).get("P1")["stock"] == 9

    def test_no_conflicts(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should say so when nothing is in conflict."""
        result = runner.invoke(
            cli, ["sync", "conflicts", "-u", "asha@example.com", "--db-path", str(db_path)]
        )

        assert result.exit_code == 0
        assert "No conflicts." in result.output

    @pytest.mark.parametrize(
        ("command", "method"),
        [("status", "get_status"), ("conflicts", "list_conflicts")],
    )
    def test_storage_unavailable(
        self,
        runner: CliRunner,
        db_path: Path,
        seeded: tuple[Database, int, str],
        command: str,
        method: str,
    ) -> None:
        """Should print an error instead of a traceback when the queue is unreadable."""
        with patch.object(SyncService, method, side_effect=StorageError("Failed to read sync status")):
            result = runner.invoke(
                cli, ["sync", command, "-u", "asha@example.com", "--db-path", str(db_path)]
            )

        assert result.exit_code == 1
        assert "Error: Failed to read sync status" in result.output
        assert not isinstance(result.exception, StorageError)

    def test_resolve_not_in_conflict(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should fail for operations that aren't conflicted."""
        result = runner.invoke(
            cli, ["sync", "resolve", "999", "-r", "use_server", "--db-path", str(db_path)]
        )

        assert result.exit_code == 1

    def test_resolve_invalid_merge_json(
        self, runner: CliRunner, db_path: Path, seeded: tuple[Database, int, str]
    ) -> None:
        """Should reject merged data that isn't a JSON object."""
        result = runner.invoke(
            cli,
            ["sync", "resolve", "1", "-r", "merge", "--merged-data", "[1, 2]", "--db-path", str(db_path)],
        )

        assert result.exit_code == 2
        assert "Must be a JSON object" in result.output
