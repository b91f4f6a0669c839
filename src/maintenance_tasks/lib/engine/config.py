"""Immutable engine configuration, built once at process startup."""

import dataclasses
from dataclasses import dataclass, field
from typing import Any

from maintenance_tasks.lib.engine.backtrace import BacktraceCleaner
from maintenance_tasks.lib.engine.error_handler import ErrorHandler, adapt_error_handler, default_error_handler
from maintenance_tasks.lib.engine.errors import ConfigurationError

DEFAULT_JOB_CLASS = "maintenance_tasks.core.background.InProcessSliceScheduler"


@dataclass(frozen=True)
class EngineConfig:
    """Process-wide engine settings passed by reference into the engine.

    Attributes:
        tasks_module: Namespace prefix of task identifiers.
        job_class: Dotted path of the slice scheduler class.
        ticker_delay: Default minimum seconds between two progress persists.
        max_slice_seconds: Optional runtime budget for a single slice; a slice
            that exceeds it is suspended as ``interrupted``.
        error_handler: Callback for per-item failures. Legacy arities are
            adapted (with a deprecation warning) when the config is created.
        backtrace_cleaner: Optional filter applied to stored backtraces.
    """

    tasks_module: str = "Maintenance"
    job_class: str = DEFAULT_JOB_CLASS
    ticker_delay: float = 1.0
    max_slice_seconds: float | None = None
    error_handler: ErrorHandler = field(default=default_error_handler)
    backtrace_cleaner: BacktraceCleaner | None = None

    def __post_init__(self) -> None:
        if self.ticker_delay < 0:
            msg = f"ticker_delay must be >= 0, got {self.ticker_delay}"
            raise ConfigurationError(msg)
        if self.max_slice_seconds is not None and self.max_slice_seconds <= 0:
            msg = f"max_slice_seconds must be positive, got {self.max_slice_seconds}"
            raise ConfigurationError(msg)
        object.__setattr__(self, "error_handler", adapt_error_handler(self.error_handler))

    def with_error_handler(self, handler: Any) -> "EngineConfig":
        """Return a copy of this config using ``handler`` for per-item failures.

        Raises:
            ConfigurationError: If the handler has an unusable signature.
        """
        return dataclasses.replace(self, error_handler=handler)
