"""Task listing CLI command."""

import typer

from maintenance_tasks.lib.engine.task import registry

tasks_app = typer.Typer()


@tasks_app.command("list")
def list_tasks() -> None:
    """List registered task identifiers."""
    names = registry.names()
    if not names:
        typer.echo("No tasks registered. Use --tasks-import or TASKS_IMPORT to load task modules.")
        return
    for name in names:
        typer.echo(name)
