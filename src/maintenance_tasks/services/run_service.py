"""Run service: persistence of task runs and the external actions operators take on them.

Operators never write a run's status while it is being executed. Pause and
cancel only set request flags that the engine observes at the next item
boundary; resume clears the pause request; retry re-enqueues an errored run.
"""

import uuid
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from maintenance_tasks.lib.engine.errors import ImmutableRunError, InvalidStatusTransitionError, RunNotFoundError
from maintenance_tasks.lib.engine.state import RunStatus, assert_transition, is_terminal
from maintenance_tasks.lib.engine.task import TaskRegistry
from maintenance_tasks.models.task_run import TaskRun

_REQUEST_FLAGS = ["pause_requested", "cancel_requested"]


def _as_uuid(run_id: Any) -> uuid.UUID:
    if isinstance(run_id, uuid.UUID):
        return run_id
    try:
        return uuid.UUID(str(run_id))
    except ValueError as e:
        msg = f"Run {run_id} not found"
        raise RunNotFoundError(msg) from e


class SqlRunStore:
    """:class:`RunStore` backed by an async SQLAlchemy session.

    Args:
        session: Session owning the run instances handed to the engine.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def load(self, run_id: Any) -> TaskRun:
        return await get_run(self._session, run_id)

    async def refresh_requests(self, run: TaskRun) -> None:
        # Only the request flags are reloaded; unsaved progress stays in memory.
        with self._session.no_autoflush:
            await self._session.refresh(run, attribute_names=_REQUEST_FLAGS)

    async def save(self, run: TaskRun) -> None:  # noqa: ARG002
        try:
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise


async def enqueue_run(session: AsyncSession, registry: TaskRegistry, task_name: str) -> TaskRun:
    """Create a new run for a registered task.

    Args:
        session: Database session.
        registry: Registry the task name is validated against.
        task_name: Task identifier or bare class name.

    Returns:
        The created TaskRun in ``enqueued`` status.

    Raises:
        TaskNotFoundError: If no such task is registered.
    """
    run = TaskRun(task_name=registry.resolve_name(task_name), status=RunStatus.ENQUEUED.value)
    session.add(run)
    await session.commit()
    await session.refresh(run)
    logger.info(f"Enqueued run {run.id} for {run.task_name}")
    return run


async def get_run(session: AsyncSession, run_id: Any) -> TaskRun:
    """Return a run by id.

    Raises:
        RunNotFoundError: If no run exists with that id.
    """
    run = await session.get(TaskRun, _as_uuid(run_id), populate_existing=True)
    if run is None:
        msg = f"Run {run_id} not found"
        raise RunNotFoundError(msg)
    return run


async def list_runs(
    session: AsyncSession,
    *,
    status: str | None = None,
    task_name: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[TaskRun], int]:
    """List runs, newest first.

    Args:
        session: Database session.
        status: Optional status filter.
        task_name: Optional task identifier filter.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (runs, total count).
    """
    query = select(TaskRun)
    if status:
        query = query.where(TaskRun.status == RunStatus(status).value)
    if task_name:
        query = query.where(TaskRun.task_name == task_name)

    count_result = await session.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(query.order_by(TaskRun.created_at.desc()).offset(offset).limit(page_size))
    return list(result.scalars().all()), total


async def request_pause(session: AsyncSession, run_id: Any) -> TaskRun:
    """Ask a run to pause at its next item boundary.

    Raises:
        ImmutableRunError: If the run already finished.
        InvalidStatusTransitionError: If the run is errored.
    """
    run = await get_run(session, run_id)
    status = RunStatus(run.status)
    if is_terminal(status):
        raise ImmutableRunError(status, RunStatus.PAUSED)
    if status is RunStatus.ERRORED:
        raise InvalidStatusTransitionError(status, RunStatus.PAUSED)
    if not run.pause_requested:
        run.pause_requested = True
        await session.commit()
        logger.info(f"Pause requested for run {run.id} ({status})")
    return run


async def request_resume(session: AsyncSession, run_id: Any) -> TaskRun:
    """Withdraw a pause request so the scheduler can run the next slice.

    Raises:
        InvalidStatusTransitionError: If the run is neither paused nor pausing.
    """
    run = await get_run(session, run_id)
    status = RunStatus(run.status)
    if status is not RunStatus.PAUSED and not run.pause_requested:
        if is_terminal(status):
            raise ImmutableRunError(status, RunStatus.RUNNING)
        raise InvalidStatusTransitionError(status, RunStatus.RUNNING)
    if run.cancel_requested:
        raise InvalidStatusTransitionError(status, RunStatus.RUNNING)
    run.pause_requested = False
    await session.commit()
    logger.info(f"Resume requested for run {run.id} ({status})")
    return run


async def request_cancel(session: AsyncSession, run_id: Any) -> TaskRun:
    """Ask a run to cancel at its next item boundary (takes precedence over pause).

    Raises:
        ImmutableRunError: If the run already finished.
        InvalidStatusTransitionError: If the run is errored.
    """
    run = await get_run(session, run_id)
    status = RunStatus(run.status)
    if is_terminal(status):
        raise ImmutableRunError(status, RunStatus.CANCELLED)
    if status is RunStatus.ERRORED:
        raise InvalidStatusTransitionError(status, RunStatus.CANCELLED)
    if not run.cancel_requested:
        run.cancel_requested = True
        await session.commit()
        logger.info(f"Cancel requested for run {run.id} ({status})")
    return run


async def retry_run(session: AsyncSession, run_id: Any) -> TaskRun:
    """Re-enqueue an errored run; it resumes from its last persisted cursor.

    Raises:
        InvalidStatusTransitionError: If the run is not errored.
    """
    run = await get_run(session, run_id)
    assert_transition(run.status, RunStatus.ENQUEUED)
    run.status = RunStatus.ENQUEUED.value
    run.error_class = None
    run.error_message = None
    run.backtrace = None
    run.ended_at = None
    run.pause_requested = False
    run.cancel_requested = False
    await session.commit()
    logger.info(f"Retrying run {run.id} from cursor {run.cursor!r}")
    return run
