"""Command-line interface for vyaparsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- serve: Run the API server
- create-user, create-company, create-token: Account administration
- cleanup-tokens: Delete expired and revoked tokens
- sync: Run sync passes and resolve conflicts from the command line
"""

from __future__ import annotations

import click

from vyaparsync.cli.admin import cleanup_tokens, create_company, create_token, create_user, serve
from vyaparsync.cli.sync import sync


@click.group()
@click.version_option(package_name="vyapar-sync")
def cli() -> None:
    """Vyapar Sync - offline sync server for Vyapar business data."""


# Server and account commands
cli.add_command(serve)
cli.add_command(create_user)
cli.add_command(create_company)
cli.add_command(create_token)
cli.add_command(cleanup_tokens)

# Sync commands
cli.add_command(sync)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = ["cli", "main"]
