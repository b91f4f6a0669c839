"""Task run engine library public API.

Provides resumable cursor-based iteration of maintenance tasks: cursor
serialization, throttled progress ticking, restartable enumerators, the run
state machine, the error handler contract, and the slice orchestrator.
"""

from maintenance_tasks.lib.engine.backtrace import PatternBacktraceCleaner, format_backtrace
from maintenance_tasks.lib.engine.config import EngineConfig
from maintenance_tasks.lib.engine.cursor import decode_cursor, encode_cursor
from maintenance_tasks.lib.engine.enumerator import (
    CollectionCursorEnumerator,
    in_batches,
    on_iterable,
    on_keyed,
    on_record_batches,
    on_records,
    on_sequence,
)
from maintenance_tasks.lib.engine.error_handler import (
    RunContext,
    adapt_error_handler,
    default_error_handler,
    invoke_error_handler,
)
from maintenance_tasks.lib.engine.errors import (
    ConfigurationError,
    CursorError,
    EngineError,
    ImmutableRunError,
    InvalidStatusTransitionError,
    RunNotFoundError,
    TaskNotFoundError,
)
from maintenance_tasks.lib.engine.interrupt import InterruptToken
from maintenance_tasks.lib.engine.runner import SliceResult, TaskRunEngine
from maintenance_tasks.lib.engine.state import RunStatus, can_transition, resolve_stop
from maintenance_tasks.lib.engine.task import MaintenanceTask, TaskRegistry, registry
from maintenance_tasks.lib.engine.ticker import ProgressTicker

__all__ = [
    "CollectionCursorEnumerator",
    "ConfigurationError",
    "CursorError",
    "EngineConfig",
    "EngineError",
    "ImmutableRunError",
    "InterruptToken",
    "InvalidStatusTransitionError",
    "MaintenanceTask",
    "PatternBacktraceCleaner",
    "ProgressTicker",
    "RunContext",
    "RunNotFoundError",
    "RunStatus",
    "SliceResult",
    "TaskNotFoundError",
    "TaskRegistry",
    "TaskRunEngine",
    "adapt_error_handler",
    "can_transition",
    "decode_cursor",
    "default_error_handler",
    "encode_cursor",
    "format_backtrace",
    "in_batches",
    "invoke_error_handler",
    "on_iterable",
    "on_keyed",
    "on_record_batches",
    "on_records",
    "on_sequence",
    "registry",
    "resolve_stop",
]
