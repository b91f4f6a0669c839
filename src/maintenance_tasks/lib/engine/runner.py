"""Task run engine: drives one slice of a run.

A slice loads the run, moves it to ``running``, resumes the task's enumerator
from the stored cursor and processes items one at a time. Between items it
lets the ticker decide whether to persist progress and polls for stop
signals (cancel, then pause, then interrupt/runtime budget). It returns when
the enumerator is exhausted, a stop signal is observed, or a fatal error
escapes iteration.

Per-item failures are contained: they go to the configured error handler and
the task's ``on_error`` hook, and iteration continues. Only enumerator/store
failures (or an ``on_error`` hook that asks for it) mark the run errored, and
those are re-raised to the caller after the run has been persisted.
"""

import asyncio
import inspect
import time
from collections.abc import Callable
from contextlib import aclosing
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from maintenance_tasks.lib.engine.backtrace import format_backtrace
from maintenance_tasks.lib.engine.config import EngineConfig
from maintenance_tasks.lib.engine.cursor import decode_cursor, encode_cursor
from maintenance_tasks.lib.engine.enumerator import CollectionCursorEnumerator
from maintenance_tasks.lib.engine.error_handler import RunContext, invoke_error_handler
from maintenance_tasks.lib.engine.interrupt import InterruptToken
from maintenance_tasks.lib.engine.state import (
    TERMINAL_STATUSES,
    RunStatus,
    assert_transition,
    resolve_stop,
    should_reenqueue,
)
from maintenance_tasks.lib.engine.store import RunRecord, RunStore
from maintenance_tasks.lib.engine.task import TaskRegistry
from maintenance_tasks.lib.engine.ticker import ProgressTicker


@dataclass(frozen=True)
class SliceResult:
    """Outcome of one slice, returned to the scheduler."""

    run_id: str
    status: RunStatus
    ticks: int = 0

    @property
    def reenqueue(self) -> bool:
        """Whether the scheduler should run another slice without operator action."""
        return should_reenqueue(self.status)


class _ItemAbortedError(Exception):
    """Internal: a task's on_error hook asked for the run to be marked errored."""

    def __init__(self, error: BaseException) -> None:
        self.error = error
        super().__init__(str(error))


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TaskRunEngine:
    """Runs slices of task runs.

    Args:
        config: Immutable engine configuration.
        store: Persistence for run records.
        registry: Registry the run's task name is resolved against.
        clock: Monotonic clock (seconds) for throttling and runtime budgets.
        now: Wall clock used for ``started_at`` / ``ended_at``.
    """

    def __init__(
        self,
        config: EngineConfig,
        store: RunStore,
        registry: TaskRegistry,
        *,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._store = store
        self._registry = registry
        self._clock = clock
        self._now = now

    async def run_slice(self, run_id: Any, interrupt: InterruptToken | None = None) -> SliceResult:
        """Execute one slice of the run.

        Args:
            run_id: Identifier of the run to execute.
            interrupt: Token the host environment trips to ask for a cooperative stop.

        Returns:
            The status the run was left in and the number of items handled.

        Raises:
            RunNotFoundError: If the run does not exist.
            Exception: Any fatal error, after the run was persisted as errored.
        """
        run = await self._store.load(run_id)
        # A failed save can expire the record; keep identifiers for the error path.
        run_id, task_name = str(run.id), run.task_name
        log = logger.bind(run_id=run_id, task=task_name)
        status = RunStatus(run.status)

        if status in TERMINAL_STATUSES or status is RunStatus.ERRORED:
            log.warning(f"Run {run_id} is {status}; nothing to do")
            return SliceResult(run_id, status)

        if status is RunStatus.PAUSED:
            if run.cancel_requested:
                await self._stop(run, RunStatus.CANCELLED, slice_started=None)
                log.info(f"Paused run {run_id} cancelled")
                return SliceResult(run_id, RunStatus.CANCELLED)
            if run.pause_requested:
                log.info(f"Run {run_id} is paused; waiting for resume")
                return SliceResult(run_id, status)

        assert_transition(status, RunStatus.RUNNING)
        run.status = RunStatus.RUNNING.value
        if run.started_at is None:
            run.started_at = self._now()
        slice_started = self._clock()
        ticks = 0
        progress = (run.tick_count, run.cursor)
        ticker: ProgressTicker | None = None

        async def persist(pending: int) -> None:  # noqa: ARG001
            await self._store.save(run)

        try:
            task = self._registry.build(task_name)
            if run.tick_total is None:
                run.tick_total = await _resolve(task.count())
            await self._store.save(run)
            log.info(f"Run {run_id} running from cursor {run.cursor!r} ({run.tick_count} ticks so far)")

            interval = task.minimum_tick_interval
            ticker = ProgressTicker(
                self._config.ticker_delay if interval is None else interval, persist, clock=self._clock
            )
            enumerator = CollectionCursorEnumerator(task.enumerate)

            stop = await self._poll_stop(run, interrupt, slice_started, ticks)
            if stop is None:
                async with aclosing(enumerator.resume(decode_cursor(run.cursor))) as pairs:
                    async for item, cursor_after in pairs:
                        error = await self._process(task, item)
                        if error is not None and self._handle_item_error(task, run, error, item):
                            raise _ItemAbortedError(error)
                        run.tick_count += 1
                        run.cursor = encode_cursor(cursor_after)
                        progress = (run.tick_count, run.cursor)
                        ticks += 1
                        await ticker.tick()

                        stop = await self._poll_stop(run, interrupt, slice_started, ticks)
                        if stop is not None:
                            break

            outcome = RunStatus.SUCCEEDED if stop is None else stop
            await self._stop(run, outcome, slice_started, ticker)
        except asyncio.CancelledError:
            # The worker itself is being torn down: keep the run resumable.
            await self._stop(run, RunStatus.INTERRUPTED, slice_started, ticker)
            log.warning(f"Run {run_id} interrupted by cancellation of its worker after {ticks} ticks")
            raise
        except _ItemAbortedError as aborted:
            await self._fail(run_id, task_name, aborted.error, slice_started, progress)
            raise aborted.error from None
        except Exception as error:
            await self._fail(run_id, task_name, error, slice_started, progress)
            raise

        tick_count, cursor = progress
        if outcome is RunStatus.SUCCEEDED:
            log.info(f"Run {run_id} succeeded: {tick_count} ticks")
            return SliceResult(run_id, outcome, ticks)

        reason = ""
        if outcome is RunStatus.INTERRUPTED:
            host = interrupt is not None and interrupt.interrupted
            reason = f" ({interrupt.reason})" if host and interrupt.reason else " (runtime budget exhausted)"
        log.info(f"Run {run_id} {outcome}{reason} at cursor {cursor!r} after {ticks} ticks this slice")
        return SliceResult(run_id, outcome, ticks)

    async def _process(self, task: Any, item: Any) -> Exception | None:
        try:
            await _resolve(task.process(item))
        except Exception as error:  # noqa: BLE001
            return error
        return None

    def _handle_item_error(self, task: Any, run: RunRecord, error: Exception, item: Any) -> bool:
        """Report a per-item failure; return True if the run must be marked errored."""
        logger.bind(run_id=str(run.id), task=run.task_name).warning(
            f"Item failed in run {run.id} at tick {run.tick_count}: {type(error).__name__}: {error}"
        )
        context = RunContext(
            task_name=run.task_name,
            run_id=str(run.id),
            started_at=run.started_at,
            tick_count=run.tick_count,
            cursor=run.cursor,
        )
        invoke_error_handler(self._config.error_handler, error, context, item)
        try:
            return bool(task.on_error(error, item))
        except Exception:
            logger.bind(run_id=str(run.id), task=run.task_name).exception(
                f"on_error hook of {run.task_name} raised; continuing run {run.id}"
            )
            return False

    async def _poll_stop(
        self,
        run: RunRecord,
        interrupt: InterruptToken | None,
        slice_started: float,
        ticks: int,
    ) -> RunStatus | None:
        await self._store.refresh_requests(run)
        # The runtime budget only applies once the slice has made progress.
        budget = self._config.max_slice_seconds
        over_budget = budget is not None and ticks > 0 and self._clock() - slice_started >= budget
        return resolve_stop(
            cancel_requested=run.cancel_requested,
            pause_requested=run.pause_requested,
            interrupted=over_budget or (interrupt is not None and interrupt.interrupted),
        )

    async def _stop(
        self,
        run: RunRecord,
        target: RunStatus,
        slice_started: float | None,
        ticker: ProgressTicker | None = None,
    ) -> None:
        """Persist status, cursor and tick count together as the run stops running."""
        assert_transition(run.status, target)
        run.status = target.value
        if target in (RunStatus.SUCCEEDED, RunStatus.CANCELLED):
            run.cursor = None
            run.ended_at = self._now()
        if slice_started is not None:
            run.time_running = (run.time_running or 0.0) + (self._clock() - slice_started)
        if ticker is None:
            await self._store.save(run)
        else:
            await ticker.flush()

    async def _fail(
        self,
        run_id: str,
        task_name: str,
        error: BaseException,
        slice_started: float,
        progress: tuple[int, str | None],
    ) -> None:
        """Persist the run as errored with the last fully processed cursor.

        The record is reloaded first: the save that failed may have rolled back
        and expired it. Failing to persist is logged; the caller re-raises
        ``error`` either way.
        """
        log = logger.bind(run_id=run_id, task=task_name)
        log.opt(exception=error).error(f"Run {run_id} errored: {type(error).__name__}: {error}")
        try:
            run = await self._store.load(run_id)
            run.status = RunStatus.ERRORED.value
            run.tick_count, run.cursor = progress
            run.error_class = type(error).__name__
            run.error_message = str(error)
            run.backtrace = format_backtrace(error, self._config.backtrace_cleaner)
            run.ended_at = self._now()
            run.time_running = (run.time_running or 0.0) + (self._clock() - slice_started)
            await self._store.save(run)
        except Exception:
            log.exception(f"Could not persist errored status of run {run_id}")
