"""
Main CLI entry point.
"""

import typer

from mongrate import __version__
from mongrate.cli import lock, migrate


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"mongrate version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="mongrate",
    help="Mongrate - ordered, run-once changeset migrations for MongoDB",
    add_completion=False,
)

# Register subcommands
app.add_typer(migrate.app, name="migrate")
app.add_typer(lock.app, name="lock")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    Mongrate - ordered, run-once changeset migrations for MongoDB.

    Run 'mongrate <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
