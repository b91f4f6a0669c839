"""Typer CLI root application."""

import importlib

import typer

from maintenance_tasks.core.config import get_settings
from maintenance_tasks.core.logging import setup_logging
from maintenance_tasks.lib.engine.task import registry

app = typer.Typer(name="maintenance-tasks", help="Resumable background maintenance tasks CLI")


def import_task_modules(modules: list[str]) -> None:
    """Import task modules so their tasks register."""
    for module in modules:
        try:
            importlib.import_module(module)
        except ImportError as e:
            typer.echo(f"Cannot import task module {module}: {e}", err=True)
            raise typer.Exit(code=1) from e


@app.callback()
def _main_callback(
    tasks_import: list[str] = typer.Option(  # noqa: B008
        [], "--tasks-import", help="Python module defining tasks (repeatable)"
    ),
) -> None:
    """Initialize logging and load task modules for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)
    registry.namespace = settings.tasks_module
    import_task_modules([*settings.tasks_import_list, *tasks_import])


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from maintenance_tasks.cli.runs_cmd import runs_app
    from maintenance_tasks.cli.tasks_cmd import tasks_app

    app.add_typer(tasks_app, name="tasks", help="Registered task commands")
    app.add_typer(runs_app, name="runs", help="Task run commands")


_register_subcommands()
