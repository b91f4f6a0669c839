"""Throttled progress ticker.

Fast tasks can finish thousands of items per second; writing the tick count
after every one of them would hammer the run record. The ticker only lets a
persist through once per ``minimum_interval`` seconds, except when forced
(the run is stopping), in which case progress is always written.
"""

import time
from collections.abc import Awaitable, Callable

Persist = Callable[[int], Awaitable[None]]


class ProgressTicker:
    """Counts processed items and persists them at most once per interval.

    Args:
        minimum_interval: Minimum number of seconds between two unforced persists.
        persist: Coroutine function called with the number of ticks accumulated
            since the previous persist.
        clock: Monotonic clock returning seconds. ``last_persisted_at`` starts at
            the clock's value when the ticker is created (the slice start).
    """

    def __init__(
        self,
        minimum_interval: float,
        persist: Persist | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if minimum_interval < 0:
            msg = f"minimum_interval must be >= 0, got {minimum_interval}"
            raise ValueError(msg)
        self.minimum_interval = minimum_interval
        self.pending = 0
        self._persist = persist
        self._clock = clock
        self.last_persisted_at = clock()

    def should_persist(self, now: float, force: bool = False) -> bool:  # noqa: FBT001, FBT002
        """Return whether progress should be written at ``now``.

        Args:
            now: Current clock reading, from the same clock as the constructor.
            force: Always persist (used when the run stops running).

        Returns:
            True if progress should be written. ``last_persisted_at`` is reset
            to ``now`` whenever True is returned.
        """
        if force or now - self.last_persisted_at >= self.minimum_interval:
            self.last_persisted_at = now
            return True
        return False

    async def tick(self, count: int = 1) -> None:
        """Record ``count`` processed items and persist them if the interval has elapsed."""
        self.pending += count
        if self.should_persist(self._clock()):
            await self._write()

    async def flush(self) -> None:
        """Persist now regardless of the interval, even with nothing pending."""
        self.should_persist(self._clock(), force=True)
        await self._write()

    async def _write(self) -> None:
        pending, self.pending = self.pending, 0
        if self._persist is not None:
            await self._persist(pending)
