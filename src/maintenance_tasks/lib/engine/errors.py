"""Exception taxonomy for the task run engine."""


class EngineError(Exception):
    """Base class for all task run engine errors."""


class CursorError(EngineError, ValueError):
    """Raised when a stored cursor string cannot be decoded."""


class InvalidStatusTransitionError(EngineError):
    """Raised when a run is asked to move along an edge the state machine forbids.

    Args:
        source: Current status of the run.
        target: Requested status.
    """

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Cannot transition run from {str(source)!r} to {str(target)!r}")


class ImmutableRunError(InvalidStatusTransitionError):
    """Raised when an action targets a run that has reached a terminal status."""


class RunNotFoundError(EngineError, LookupError):
    """Raised when no run exists for the given identifier."""


class TaskNotFoundError(EngineError, LookupError):
    """Raised when no task is registered under the given name."""


class ConfigurationError(EngineError):
    """Raised at configuration time for invalid engine settings or collaborators."""
