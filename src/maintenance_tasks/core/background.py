"""Slice scheduling.

Provides a protocol for executing a run slice by slice, with an in-process
asyncio implementation. The configured scheduler class (``job_class``) is
resolved from its dotted path once at startup so a different queue backend
can be swapped in without touching the engine.
"""

import asyncio
import inspect
import signal
from typing import Any, Protocol

from loguru import logger

from maintenance_tasks.core.config import import_from_path
from maintenance_tasks.lib.engine.errors import ConfigurationError
from maintenance_tasks.lib.engine.interrupt import InterruptToken
from maintenance_tasks.lib.engine.runner import SliceResult, TaskRunEngine


class SliceScheduler(Protocol):
    """Protocol for executing runs.

    Implementations are constructed as ``cls(engine, interrupt=token)``.
    """

    async def run(self, run_id: Any) -> SliceResult:
        """Execute slices of a run until it no longer needs to be re-enqueued.

        Args:
            run_id: The run to execute.

        Returns:
            The result of the last slice.
        """
        ...


class InProcessSliceScheduler:
    """In-process scheduler running slices in the current event loop.

    An ``interrupted`` run caused by the runtime budget is re-enqueued right
    away (after ``requeue_delay``); one caused by the host interrupt token is
    left for the next process to pick up.

    Args:
        engine: Engine executing individual slices.
        interrupt: Host shutdown token shared with every slice.
        requeue_delay: Seconds to wait before re-running an interrupted run.
        max_slices: Optional cap on slices per ``run`` call.
    """

    def __init__(
        self,
        engine: TaskRunEngine,
        *,
        interrupt: InterruptToken | None = None,
        requeue_delay: float = 0.0,
        max_slices: int | None = None,
    ) -> None:
        self._engine = engine
        self._interrupt = interrupt or InterruptToken()
        self._requeue_delay = requeue_delay
        self._max_slices = max_slices

    @property
    def interrupt(self) -> InterruptToken:
        return self._interrupt

    async def run(self, run_id: Any) -> SliceResult:
        slices = 0
        while True:
            result = await self._engine.run_slice(run_id, interrupt=self._interrupt)
            slices += 1
            if not result.reenqueue or self._interrupt.interrupted:
                return result
            if self._max_slices is not None and slices >= self._max_slices:
                logger.info(f"Run {run_id} re-enqueue deferred after {slices} slices")
                return result
            logger.debug(f"Re-enqueueing run {run_id} (slice {slices} ended {result.status})")
            await asyncio.sleep(self._requeue_delay)


def load_scheduler_class(path: str) -> type:
    """Resolve the configured scheduler class from its dotted path.

    Raises:
        ConfigurationError: If the path cannot be imported or the class has no ``run`` coroutine.
    """
    scheduler_class = import_from_path(path, "job_class")
    if not isinstance(scheduler_class, type) or not inspect.iscoroutinefunction(
        getattr(scheduler_class, "run", None)
    ):
        msg = f"job_class {path!r} must be a class with an async run(run_id) method"
        raise ConfigurationError(msg)
    return scheduler_class


def install_signal_handlers(interrupt: InterruptToken) -> None:
    """Trip the interrupt token on SIGTERM/SIGINT so running slices stop at the next item boundary."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, interrupt.request_interrupt, sig.name)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")
