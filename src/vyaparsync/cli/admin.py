"""Server administration commands.

Commands:
- serve: Run the API server
- create-user: Create a user and print an API token
- create-company: Create a company owned by a user
- create-token: Issue an additional API token for a user
- cleanup-tokens: Delete expired and revoked tokens
"""

from __future__ import annotations

import sys
from datetime import timedelta

import click
from sqlalchemy.exc import IntegrityError

from vyaparsync.cli.common import db_path_option, open_database
from vyaparsync.core.config import ServerSettings


def _token_ttl(days: int | None) -> timedelta | None:
    ttl_days = days if days is not None else ServerSettings.from_env().token_ttl_days
    return timedelta(days=ttl_days) if ttl_days > 0 else None


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port.")
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the API server.

    Settings are read from VYAPAR_* environment variables.
    """
    import uvicorn

    uvicorn.run(
        "vyaparsync.server.app:app_factory",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@click.command("create-user")
@click.argument("name")
@click.option("--email", required=True, help="Unique email address.")
@click.option(
    "--ttl-days",
    type=int,
    default=None,
    help="Token lifetime in days (default: VYAPAR_TOKEN_TTL_DAYS, 0 = never expires).",
)
@db_path_option
def create_user(name: str, email: str, ttl_days: int | None, db_path: str | None) -> None:
    """Create a user and print a new API token.

    Examples:

        vyaparsync create-user "Asha Rao" --email asha@example.com
    """
    db = open_database(db_path, must_exist=False)
    try:
        try:
            user = db.create_user(name, email)
        except IntegrityError:
            click.echo(f"Error: A user with email {email} already exists.", err=True)
            sys.exit(1)
        raw_token, _ = db.create_token(user.id, expires_in=_token_ttl(ttl_days))
        click.echo(f"User created: {user.name} (id {user.id})")
        click.echo(f"Token: {raw_token}")
    finally:
        db.close()


@click.command("create-company")
@click.argument("name")
@click.option("--owner-email", required=True, help="Email of the owning user.")
@click.option("--gstin", default=None, help="GST identification number.")
@db_path_option
def create_company(name: str, owner_email: str, gstin: str | None, db_path: str | None) -> None:
    """Create a company owned by an existing user."""
    db = open_database(db_path)
    try:
        owner = db.get_user_by_email(owner_email)
        if owner is None:
            click.echo(f"Error: No user with email {owner_email}.", err=True)
            sys.exit(1)
        company = db.create_company(name, owner.id, gstin=gstin)
        click.echo(f"Company created: {company.name}")
        click.echo(f"Company ID: {company.id}")
    finally:
        db.close()


@click.command("create-token")
@click.option("--email", required=True, help="Email of the user.")
@click.option("--ttl-days", type=int, default=None, help="Token lifetime in days.")
@db_path_option
def create_token(email: str, ttl_days: int | None, db_path: str | None) -> None:
    """Issue an additional API token for a user."""
    db = open_database(db_path)
    try:
        user = db.get_user_by_email(email)
        if user is None:
            click.echo(f"Error: No user with email {email}.", err=True)
            sys.exit(1)
        raw_token, _ = db.create_token(user.id, expires_in=_token_ttl(ttl_days))
        click.echo(f"Token: {raw_token}")
    finally:
        db.close()


@click.command("cleanup-tokens")
@db_path_option
def cleanup_tokens(db_path: str | None) -> None:
    """Delete expired and revoked tokens.

    Runs daily inside the server; use this to run it from cron instead.
    """
    from vyaparsync.server.scheduler import purge_expired_tokens

    db = open_database(db_path)
    try:
        deleted = purge_expired_tokens(db)
        click.echo(f"Deleted {deleted} tokens." if deleted else "No tokens to delete.")
    finally:
        db.close()
