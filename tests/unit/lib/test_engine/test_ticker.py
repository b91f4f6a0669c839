"""Unit tests for the throttled progress ticker."""

import pytest

from maintenance_tasks.lib.engine.ticker import ProgressTicker


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestProgressTicker:
    """Tests for ProgressTicker.should_persist."""

    def test_starts_at_clock_value(self) -> None:
        ticker = ProgressTicker(1.0, clock=FakeClock(50.0))
        assert ticker.last_persisted_at == 50.0

    def test_throttles_within_interval(self) -> None:
        ticker = ProgressTicker(1.0, clock=FakeClock(0.0))
        assert ticker.should_persist(0.2) is False
        assert ticker.should_persist(0.9) is False
        assert ticker.last_persisted_at == 0.0

    def test_persists_once_interval_elapsed(self) -> None:
        ticker = ProgressTicker(1.0, clock=FakeClock(0.0))
        assert ticker.should_persist(1.0) is True
        assert ticker.last_persisted_at == 1.0
        assert ticker.should_persist(1.5) is False
        assert ticker.should_persist(2.0) is True

    def test_force_overrides_throttle(self) -> None:
        ticker = ProgressTicker(10.0, clock=FakeClock(0.0))
        assert ticker.should_persist(0.1, force=True) is True
        assert ticker.last_persisted_at == 0.1

    def test_zero_interval_always_persists(self) -> None:
        ticker = ProgressTicker(0.0, clock=FakeClock(0.0))
        assert all(ticker.should_persist(0.0) for _ in range(5))

    def test_at_most_one_persist_per_interval(self) -> None:
        """Over a steady stream of ticks, persists are at least one interval apart."""
        ticker = ProgressTicker(1.0, clock=FakeClock(0.0))
        persisted = [t / 10 for t in range(1, 51) if ticker.should_persist(t / 10)]
        assert persisted == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(ValueError, match=">= 0"):
            ProgressTicker(-1.0)


class TestTickAndFlush:
    """Tests for the persisting tick/flush API."""

    @pytest.mark.asyncio
    async def test_tick_persists_accumulated_count(self) -> None:
        clock = FakeClock(0.0)
        persisted: list[int] = []

        async def persist(pending: int) -> None:
            persisted.append(pending)

        ticker = ProgressTicker(1.0, persist, clock=clock)
        for now in (0.3, 0.6, 1.0, 1.4, 2.2):
            clock.now = now
            await ticker.tick()

        assert persisted == [3, 2]
        assert ticker.pending == 0

    @pytest.mark.asyncio
    async def test_tick_counts_batches(self) -> None:
        clock = FakeClock(0.0)
        persisted: list[int] = []

        async def persist(pending: int) -> None:
            persisted.append(pending)

        ticker = ProgressTicker(5.0, persist, clock=clock)
        await ticker.tick(100)
        await ticker.tick(50)

        assert persisted == []
        assert ticker.pending == 150

    @pytest.mark.asyncio
    async def test_flush_ignores_interval(self) -> None:
        clock = FakeClock(0.0)
        persisted: list[int] = []

        async def persist(pending: int) -> None:
            persisted.append(pending)

        ticker = ProgressTicker(60.0, persist, clock=clock)
        await ticker.tick()
        await ticker.tick()
        clock.now = 0.5
        await ticker.flush()

        assert persisted == [2]
        assert ticker.last_persisted_at == 0.5

    @pytest.mark.asyncio
    async def test_flush_with_nothing_pending_still_persists(self) -> None:
        persisted: list[int] = []

        async def persist(pending: int) -> None:
            persisted.append(pending)

        ticker = ProgressTicker(60.0, persist, clock=FakeClock(0.0))
        await ticker.flush()

        assert persisted == [0]

    @pytest.mark.asyncio
    async def test_without_persist_callback(self) -> None:
        ticker = ProgressTicker(0.0, clock=FakeClock(0.0))
        await ticker.tick(3)
        await ticker.flush()
        assert ticker.pending == 0
