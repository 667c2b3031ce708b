"""
mongrate migrate - run changeset migrations.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from mongrate.config.loader import Config, load_config
from mongrate.config.settings import MigrationConfig
from mongrate.core.runner import MigrationRunner
from mongrate.core.types import ChangesetOutcome, RunReport, RunState
from mongrate.exceptions import MongrateError
from mongrate.utils.logging import setup_logging_from_config

app = typer.Typer(name="migrate", help="Run MongoDB changeset migrations", invoke_without_command=True)

console = Console()

_OUTCOME_MARKS = {
    ChangesetOutcome.APPLIED: "✓",
    ChangesetOutcome.REAPPLIED: "↻",
    ChangesetOutcome.SKIPPED_ALREADY_APPLIED: "·",
    ChangesetOutcome.SKIPPED_DUPLICATE_RACE: "=",
    ChangesetOutcome.FAILED: "✗",
}


def load_settings(project_dir: Path, env: str | None) -> tuple[Config, MigrationConfig]:
    """Load config.yaml (+ env overlay), set up logging and build runner settings."""
    cfg = load_config(project_dir, env=env)
    setup_logging_from_config(cfg.data, project_dir=project_dir)
    return cfg, MigrationConfig.from_config(cfg)


@app.callback()
def migrate(
    ctx: typer.Context,
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    env: str = typer.Option(None, "--env", "-e", help="Environment name"),
    list_only: bool = typer.Option(
        False, "--list", "-l", help="List changesets and their status without running them"
    ),
):
    """
    Run pending changesets.

    Examples:
        # Apply all pending changesets
        mongrate migrate --env prod

        # Show which changesets are applied and which are pending
        mongrate migrate --list --env prod
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        _, settings = load_settings(project_dir, env)
        with MigrationRunner(settings) as runner:
            if list_only:
                _print_status(runner)
                return
            report = runner.execute()
    except MongrateError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _print_report(report)
    if report.failed:
        raise typer.Exit(1)


def _print_status(runner: MigrationRunner) -> None:
    rows = runner.status()
    if not rows:
        typer.echo("No changesets found")
        return

    applied = sum(1 for _, entry in rows if entry is not None)
    typer.echo(f"\nChangesets in {runner.database_name}: {applied} applied, {len(rows) - applied} pending\n")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Changelog")
    table.add_column("Id")
    table.add_column("Author")
    table.add_column("Status")
    table.add_column("Applied at")
    for changeset, entry in rows:
        if entry is not None:
            status = "[green]applied[/green]"
            if changeset.run_always:
                status += " (run always)"
            applied_at = entry.timestamp.isoformat(sep=" ", timespec="seconds")
        else:
            status = "[yellow]pending[/yellow]"
            applied_at = "-"
        table.add_row(changeset.changelog, changeset.id, changeset.author, status, applied_at)
    console.print(table)


def _print_report(report: RunReport) -> None:
    if report.state == RunState.DISABLED:
        typer.echo("Mongrate is disabled; nothing was run")
        return
    if report.state == RunState.FAILED:
        typer.echo("Another instance holds the migration lock; nothing was run")
        return
    if not report.results:
        typer.echo("No changesets to run")
        return

    typer.echo(f"\nProcessed {len(report.results)} changeset(s)")
    typer.echo(f"  Applied: {report.applied}, Reapplied: {report.reapplied}, Skipped: {report.skipped}")
    if report.failed:
        typer.echo(f"  Failed: {report.failed}", err=True)

    for result in report.results:
        mark = _OUTCOME_MARKS[result.outcome]
        line = f"  {mark} {result.changeset_id} ({result.author}) {result.outcome.value}"
        if result.outcome == ChangesetOutcome.FAILED:
            typer.echo(f"{line}: {result.error_message}", err=True)
        else:
            typer.echo(line)
