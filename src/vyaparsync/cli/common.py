"""Helpers shared by CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from vyaparsync.core.config import ServerSettings
from vyaparsync.server.database import Database

db_path_option = click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to database file (default: VYAPAR_DB_PATH or ./vyapar.db).",
)


def resolve_db_path(db_path: str | None) -> Path:
    """Resolve the database path from the option or the environment."""
    if db_path:
        return Path(db_path)
    return ServerSettings.from_env().db_path


def open_database(db_path: str | None, must_exist: bool = True) -> Database:
    """Open the server database, exiting with an error if it is missing."""
    path = resolve_db_path(db_path)
    if must_exist and not path.exists():
        click.echo(f"Error: Database not found: {path}", err=True)
        click.echo("Create a user first or start the server once.", err=True)
        sys.exit(1)
    return Database(path)
