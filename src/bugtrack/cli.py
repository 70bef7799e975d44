"""CLI for the bugtrack bug tracker.

Convention-based: discovers .bugtrack/ by walking up from cwd.

Usage:
    bugtrack init                                # Initialize .bugtrack/ in cwd
    bugtrack dashboard                           # Serve the web app
    bugtrack dashboard --port 9000 --no-browser  # Custom port, no browser
    bugtrack list-users                          # Registered accounts
    bugtrack list-users --json                   # Same, as JSON
"""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path

import click

from bugtrack import __version__
from bugtrack.core import (
    BUGTRACK_DIR_NAME,
    BugTrackerDB,
    find_bugtrack_root,
    new_session_secret,
    read_config,
    resolve_db_path,
    write_config,
)
from bugtrack.errors import StoreUnavailable


def _get_db() -> BugTrackerDB:
    """Discover .bugtrack/ and return an initialized BugTrackerDB."""
    try:
        bugtrack_dir = find_bugtrack_root()
    except FileNotFoundError:
        click.echo(f"No {BUGTRACK_DIR_NAME}/ found. Run 'bugtrack init' first.", err=True)
        sys.exit(1)
    config = read_config(bugtrack_dir)
    db = BugTrackerDB(resolve_db_path(bugtrack_dir), prefix=config.get("prefix", "bug"))
    try:
        db.initialize()
    except StoreUnavailable as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    return db


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="bugtrack")
def cli() -> None:
    """Bugtrack: session-authenticated bug tracker."""


@cli.command()
@click.option("--prefix", default="bug", help="ID prefix for bugs and users (default: bug)")
def init(prefix: str) -> None:
    """Initialize .bugtrack/ in the current directory."""
    cwd = Path.cwd()
    bugtrack_dir = cwd / BUGTRACK_DIR_NAME

    if bugtrack_dir.exists():
        click.echo(f"{BUGTRACK_DIR_NAME}/ already exists in {cwd}")
        # Still ensure DB is initialized
        _get_db().close()
        return

    bugtrack_dir.mkdir()
    write_config(bugtrack_dir, {"prefix": prefix, "version": 1, "session_secret": new_session_secret()})

    db = _get_db()
    db_path = db.db_path
    db.close()

    click.echo(f"Initialized {BUGTRACK_DIR_NAME}/ in {cwd}")
    click.echo(f"  Prefix: {prefix}")
    click.echo(f"  Database: {db_path}")
    click.echo("\nNext: bugtrack dashboard")


@cli.command()
@click.option("--port", default=None, type=int, help="Port to listen on (default: config or 3000)")
@click.option("--no-browser", is_flag=True, help="Don't open a browser")
def dashboard(port: int | None, no_browser: bool) -> None:
    """Serve the bug tracker web app."""
    from bugtrack.dashboard import main

    try:
        main(port, no_browser=no_browser)
    except FileNotFoundError:
        click.echo(f"No {BUGTRACK_DIR_NAME}/ found. Run 'bugtrack init' first.", err=True)
        sys.exit(1)
    except StoreUnavailable as exc:
        # Never serve without a reachable store.
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command("list-users")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_users(as_json: bool) -> None:
    """List registered users, newest first."""
    with _get_db() as db:
        users = db.list_users()

    if as_json:
        click.echo(json_mod.dumps([u.to_dict() for u in users], indent=2))
        return
    if not users:
        click.echo("No users registered.")
        return
    for u in users:
        click.echo(f"{u.id}  {u.role:<8}  {u.name} <{u.email}>")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
