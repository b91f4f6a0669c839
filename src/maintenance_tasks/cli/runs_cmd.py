"""Task run CLI commands: enqueue, perform, external actions, and inspection."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import typer

from maintenance_tasks.lib.engine.errors import EngineError

runs_app = typer.Typer()


def _run(coro: Awaitable[Any]) -> Any:
    """Run a coroutine, turning engine errors into a non-zero exit."""
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except EngineError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


def _echo_run(run: Any) -> None:
    from maintenance_tasks.schemas.task_run import TaskRunResponse

    typer.echo(TaskRunResponse.model_validate(run).model_dump_json(indent=2))


@runs_app.command("enqueue")
def enqueue(
    task_name: str = typer.Argument(..., help="Task identifier or class name"),  # noqa: B008
    perform: bool = typer.Option(False, "--perform", help="Run it right away in this process"),  # noqa: FBT001
) -> None:
    """Create a run for a registered task and print its ID."""
    run_id = _run(_enqueue(task_name))
    typer.echo(str(run_id))
    if perform:
        _run(_perform(str(run_id)))


@runs_app.command("perform")
def perform_run(
    run_id: str = typer.Argument(..., help="Run UUID"),  # noqa: B008
) -> None:
    """Execute a run through the configured scheduler."""
    _run(_perform(run_id))


@runs_app.command("pause")
def pause_run(run_id: str = typer.Argument(..., help="Run UUID")) -> None:  # noqa: B008
    """Ask a run to pause at its next item boundary."""
    from maintenance_tasks.services.run_service import request_pause

    _run(_apply(request_pause, run_id))


@runs_app.command("resume")
def resume_run(run_id: str = typer.Argument(..., help="Run UUID")) -> None:  # noqa: B008
    """Withdraw a pause request."""
    from maintenance_tasks.services.run_service import request_resume

    _run(_apply(request_resume, run_id))


@runs_app.command("cancel")
def cancel_run(run_id: str = typer.Argument(..., help="Run UUID")) -> None:  # noqa: B008
    """Ask a run to cancel at its next item boundary."""
    from maintenance_tasks.services.run_service import request_cancel

    _run(_apply(request_cancel, run_id))


@runs_app.command("retry")
def retry(run_id: str = typer.Argument(..., help="Run UUID")) -> None:  # noqa: B008
    """Re-enqueue an errored run from its last cursor."""
    from maintenance_tasks.services.run_service import retry_run

    _run(_apply(retry_run, run_id))


@runs_app.command("show")
def show_run(run_id: str = typer.Argument(..., help="Run UUID")) -> None:  # noqa: B008
    """Show a run as JSON."""
    from maintenance_tasks.services.run_service import get_run

    _run(_apply(get_run, run_id))


@runs_app.command("list")
def list_runs_cmd(
    status: str | None = typer.Option(None, "--status", help="Filter by status"),
    task_name: str | None = typer.Option(None, "--task", help="Filter by task identifier"),
    page: int = typer.Option(1, "--page", min=1, help="Page number"),  # noqa: B008
    page_size: int = typer.Option(20, "--page-size", min=1, max=100, help="Runs per page"),  # noqa: B008
) -> None:
    """List runs, newest first, as JSON."""
    _run(_list(status, task_name, page, page_size))


async def _enqueue(task_name: str) -> Any:
    """Async implementation of enqueue."""
    from maintenance_tasks.core.config import get_settings
    from maintenance_tasks.core.database import session_scope
    from maintenance_tasks.lib.engine.task import registry
    from maintenance_tasks.services.run_service import enqueue_run

    settings = get_settings()
    async with session_scope(settings.database_url, schema=settings.database_schema) as session:
        run = await enqueue_run(session, registry, task_name)
        return run.id


async def _perform(run_id: str) -> None:
    """Async implementation of perform."""
    from maintenance_tasks.core.background import install_signal_handlers, load_scheduler_class
    from maintenance_tasks.core.config import build_engine_config, get_settings
    from maintenance_tasks.core.database import session_scope
    from maintenance_tasks.lib.engine import InterruptToken, TaskRunEngine
    from maintenance_tasks.lib.engine.task import registry
    from maintenance_tasks.services.run_service import SqlRunStore, get_run

    settings = get_settings()
    config = build_engine_config(settings)
    scheduler_class = load_scheduler_class(config.job_class)

    async with session_scope(settings.database_url, schema=settings.database_schema) as session:
        interrupt = InterruptToken()
        install_signal_handlers(interrupt)
        engine = TaskRunEngine(config, SqlRunStore(session), registry)
        scheduler = scheduler_class(engine, interrupt=interrupt)
        try:
            result = await scheduler.run(run_id)
        except EngineError:
            raise
        except Exception as e:
            typer.echo(f"Run {run_id} errored: {type(e).__name__}: {e}", err=True)
            _echo_run(await get_run(session, run_id))
            raise typer.Exit(code=1) from e

        typer.echo(f"Run {result.run_id} {result.status} ({result.ticks} ticks this invocation)")
        _echo_run(await get_run(session, run_id))


async def _apply(action: Callable[[Any, str], Awaitable[Any]], run_id: str) -> None:
    """Apply a run service action and print the run."""
    from maintenance_tasks.core.config import get_settings
    from maintenance_tasks.core.database import session_scope

    settings = get_settings()
    async with session_scope(settings.database_url, schema=settings.database_schema) as session:
        run = await action(session, run_id)
        _echo_run(run)


async def _list(status: str | None, task_name: str | None, page: int, page_size: int) -> None:
    """Async implementation of list."""
    from maintenance_tasks.core.config import get_settings
    from maintenance_tasks.core.database import session_scope
    from maintenance_tasks.lib.engine.state import RunStatus
    from maintenance_tasks.schemas.task_run import PaginatedTaskRunResponse, PaginationMeta, TaskRunResponse
    from maintenance_tasks.services.run_service import list_runs

    if status is not None and status not in {s.value for s in RunStatus}:
        typer.echo(f"Error: unknown status {status!r}", err=True)
        raise typer.Exit(code=1)

    settings = get_settings()
    async with session_scope(settings.database_url, schema=settings.database_schema) as session:
        runs, total = await list_runs(session, status=status, task_name=task_name, page=page, page_size=page_size)
        response = PaginatedTaskRunResponse(
            items=[TaskRunResponse.model_validate(r) for r in runs],
            pagination=PaginationMeta.build(total, page, page_size),
        )
        typer.echo(response.model_dump_json(indent=2))
