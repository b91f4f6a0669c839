"""Persistence boundary between the engine and wherever runs are stored."""

from datetime import datetime
from typing import Any, Protocol


class RunRecord(Protocol):
    """Attributes of a run the engine reads and writes."""

    id: Any
    task_name: str
    status: str
    cursor: str | None
    tick_count: int
    tick_total: int | None
    time_running: float
    pause_requested: bool
    cancel_requested: bool
    error_class: str | None
    error_message: str | None
    backtrace: list[str] | None
    started_at: datetime | None
    ended_at: datetime | None


class RunStore(Protocol):
    """Loads runs and commits the engine's in-memory changes to them.

    ``save`` must write every changed attribute of the run in a single
    transaction, so that status, cursor and tick count always move together.
    """

    async def load(self, run_id: Any) -> RunRecord:
        """Return the run, raising ``RunNotFoundError`` if it does not exist."""
        ...

    async def refresh_requests(self, run: RunRecord) -> None:
        """Reload only the pause/cancel request flags from storage."""
        ...

    async def save(self, run: RunRecord) -> None:
        """Commit all pending changes to the run atomically."""
        ...
