"""Offline sync commands operating directly on the server database.

Commands:
- sync run: Apply a user's pending operations for a company
- sync status: Show per-status operation counts
- sync conflicts: List operations waiting for resolution
- sync resolve: Resolve a conflicted operation
"""

from __future__ import annotations

import json
import sys

import click

from vyaparsync.cli.common import db_path_option, open_database
from vyaparsync.core.types import Resolution
from vyaparsync.server.database import Database
from vyaparsync.server.models import User
from vyaparsync.server.sync import StorageError, SyncService


def _require_user(db: Database, email: str) -> User:
    user = db.get_user_by_email(email)
    if user is None:
        click.echo(f"Error: No user with email {email}.", err=True)
        sys.exit(1)
    return user


@click.group()
def sync() -> None:
    """Offline sync commands.

    These run sync passes and resolve conflicts without going through the API.
    """


@sync.command("run")
@click.option("--user-email", "-u", required=True, help="Owner of the queued operations.")
@click.option("--company-id", "-c", required=True, help="Company to sync.")
@db_path_option
def run_cmd(user_email: str, company_id: str, db_path: str | None) -> None:
    """Apply all pending operations for a company, oldest first."""
    db = open_database(db_path)
    try:
        user = _require_user(db, user_email)
        try:
            result = SyncService(db).run_sync(user.id, company_id)
        except StorageError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        click.echo(
            f"Synced: {result.synced}, failed: {result.failed}, conflicts: {result.conflicts}"
        )
        for error in result.errors:
            click.echo(f"  {error}", err=True)
        if not result.success:
            sys.exit(2)
    finally:
        db.close()


@sync.command("status")
@click.option("--user-email", "-u", required=True, help="Owner of the queued operations.")
@click.option("--company-id", "-c", default=None, help="Restrict to one company.")
@db_path_option
def status_cmd(user_email: str, company_id: str | None, db_path: str | None) -> None:
    """Show how many operations are in each status."""
    db = open_database(db_path)
    try:
        user = _require_user(db, user_email)
        try:
            counts = SyncService(db).get_status(user.id, company_id)
        except StorageError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        for name, count in counts.to_dict().items():
            click.echo(f"{name:<10} {count}")
    finally:
        db.close()


@sync.command("conflicts")
@click.option("--user-email", "-u", required=True, help="Owner of the queued operations.")
@click.option("--company-id", "-c", default=None, help="Restrict to one company.")
@db_path_option
def conflicts_cmd(user_email: str, company_id: str | None, db_path: str | None) -> None:
    """List operations waiting for conflict resolution."""
    db = open_database(db_path)
    try:
        user = _require_user(db, user_email)
        try:
            conflicts = SyncService(db).list_conflicts(user.id, company_id)
        except StorageError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        if not conflicts:
            click.echo("No conflicts.")
            return
        for op in conflicts:
            server_updated = (op.conflict_data or {}).get("updated_at", "?")
            click.echo(
                f"#{op.id} {op.operation} {op.table_name}/{op.record_id} "
                f"(server updated {server_updated})"
            )
    finally:
        db.close()


@sync.command("resolve")
@click.argument("operation_id", type=int)
@click.option(
    "--resolution",
    "-r",
    type=click.Choice([r.value for r in Resolution]),
    required=True,
    help="Keep server data, re-apply client data, or apply merged data.",
)
@click.option("--merged-data", default=None, help="JSON object to apply with --resolution merge.")
@db_path_option
def resolve_cmd(
    operation_id: int,
    resolution: str,
    merged_data: str | None,
    db_path: str | None,
) -> None:
    """Resolve a conflicted operation.

    Examples:

        vyaparsync sync resolve 42 -r use_server

        vyaparsync sync resolve 42 -r merge --merged-data '{"notes": "merged"}'
    """
    merged: dict[str, object] | None = None
    if merged_data is not None:
        try:
            merged = json.loads(merged_data)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--merged-data") from e
        if not isinstance(merged, dict):
            raise click.BadParameter("Must be a JSON object", param_hint="--merged-data")

    db = open_database(db_path)
    try:
        service = SyncService(db)
        if not service.resolve(operation_id, resolution, merged):
            click.echo(
                f"Error: Operation {operation_id} not found, not in conflict, "
                "or merge data missing.",
                err=True,
            )
            sys.exit(1)
        operation = service.get_operation(operation_id)
        status = operation.status if operation else "unknown"
        click.echo(f"Operation {operation_id} resolved with {resolution}: {status}")
    finally:
        db.close()
