"""
mongrate lock - inspect and reclaim the migration lock.
"""

from pathlib import Path

import typer
from rich.console import Console

from mongrate.cli.migrate import load_settings
from mongrate.core.runner import MigrationRunner
from mongrate.core.types import utcnow
from mongrate.exceptions import MongrateError

app = typer.Typer(name="lock", help="Inspect or reclaim the migration lock")

console = Console()


@app.command()
def show(
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    env: str = typer.Option(None, "--env", "-e", help="Environment name"),
):
    """
    Show who holds the migration lock.
    """
    try:
        _, settings = load_settings(project_dir, env)
        with MigrationRunner(settings) as runner:
            record = runner.lock_store().current()
    except MongrateError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if record is None:
        typer.echo("Migration lock is free")
        return

    now = utcnow()
    age = now - record.acquired_at
    state = "[red]stale[/red]" if record.is_expired(now) else "[green]active[/green]"
    typer.echo(f"Migration lock held by {record.owner}")
    acquired = record.acquired_at.isoformat(sep=" ", timespec="seconds")
    console.print(f"  Acquired at: {acquired} ({int(age.total_seconds())}s ago)")
    console.print(f"  Stale after: {record.expires_at.isoformat(sep=' ', timespec='seconds')}")
    console.print(f"  State: {state}")


@app.command()
def reclaim(
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    env: str = typer.Option(None, "--env", "-e", help="Environment name"),
    force: bool = typer.Option(False, "--force", "-f", help="Remove the lock even if it is not stale"),
):
    """
    Remove an abandoned migration lock.

    Without --force only a lock older than lock_staleness_seconds is removed.
    """
    try:
        _, settings = load_settings(project_dir, env)
        with MigrationRunner(settings) as runner:
            locks = runner.lock_store()
            removed = locks.force_release() if force else locks.reclaim_stale()
            still_held = locks.current()
    except MongrateError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if removed:
        typer.echo("Migration lock removed")
    elif still_held is not None:
        typer.echo(f"Migration lock held by {still_held.owner} is not stale; use --force to remove it", err=True)
        raise typer.Exit(1)
    else:
        typer.echo("Migration lock is free")
