"""Run status state machine.

Statuses and the legal edges between them::

    enqueued    -> running | cancelled
    running     -> paused | interrupted | succeeded | errored | cancelled
    paused      -> running | cancelled
    interrupted -> running
    errored     -> enqueued            (explicit retry)
    succeeded, cancelled               (terminal)

External actors never write a status directly. They set a pause or cancel
request flag and the engine performs the transition at the next item boundary.
"""

from enum import StrEnum

from maintenance_tasks.lib.engine.errors import ImmutableRunError, InvalidStatusTransitionError


class RunStatus(StrEnum):
    """Canonical status of a task run."""

    ENQUEUED = "enqueued"
    RUNNING = "running"
    PAUSED = "paused"
    INTERRUPTED = "interrupted"
    SUCCEEDED = "succeeded"
    ERRORED = "errored"
    CANCELLED = "cancelled"


TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.ENQUEUED: frozenset({RunStatus.RUNNING, RunStatus.CANCELLED}),
    RunStatus.RUNNING: frozenset(
        {
            RunStatus.PAUSED,
            RunStatus.INTERRUPTED,
            RunStatus.SUCCEEDED,
            RunStatus.ERRORED,
            RunStatus.CANCELLED,
        }
    ),
    RunStatus.PAUSED: frozenset({RunStatus.RUNNING, RunStatus.CANCELLED}),
    RunStatus.INTERRUPTED: frozenset({RunStatus.RUNNING}),
    RunStatus.ERRORED: frozenset({RunStatus.ENQUEUED}),
    RunStatus.SUCCEEDED: frozenset(),
    RunStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({RunStatus.SUCCEEDED, RunStatus.CANCELLED})

# Statuses whose stored cursor is meaningful for a later slice.
RESUMABLE_STATUSES = frozenset({RunStatus.ENQUEUED, RunStatus.PAUSED, RunStatus.INTERRUPTED, RunStatus.ERRORED})


def is_terminal(status: str) -> bool:
    """Return whether a run in ``status`` can never change again."""
    return RunStatus(status) in TERMINAL_STATUSES


def is_resumable(status: str) -> bool:
    """Return whether a run in ``status`` may keep a cursor for a later slice."""
    return RunStatus(status) in RESUMABLE_STATUSES


def should_reenqueue(status: str) -> bool:
    """Return whether the scheduler should run another slice without operator action."""
    return RunStatus(status) is RunStatus.INTERRUPTED


def can_transition(source: str, target: str) -> bool:
    """Return whether ``source -> target`` is a legal edge."""
    return RunStatus(target) in TRANSITIONS[RunStatus(source)]


def assert_transition(source: str, target: str) -> None:
    """Validate a transition.

    Raises:
        ImmutableRunError: If ``source`` is terminal.
        InvalidStatusTransitionError: If the edge is not allowed.
    """
    if is_terminal(source):
        raise ImmutableRunError(source, target)
    if not can_transition(source, target):
        raise InvalidStatusTransitionError(source, target)


def resolve_stop(
    *,
    cancel_requested: bool,
    pause_requested: bool,
    interrupted: bool,
) -> RunStatus | None:
    """Pick the status a running slice should stop with, if any.

    Precedence is cancel, then pause, then interrupt.

    Returns:
        The target status, or None when the run should keep going.
    """
    if cancel_requested:
        return RunStatus.CANCELLED
    if pause_requested:
        return RunStatus.PAUSED
    if interrupted:
        return RunStatus.INTERRUPTED
    return None
