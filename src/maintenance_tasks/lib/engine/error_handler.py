"""Per-item error handler contract.

The engine reports every per-item failure to a single process-wide callback
``handler(error, context, errored_item)``. Older integrations supplied a
handler that only takes the error (or the error and the context); those are
wrapped into the three-argument form when the configuration is built, with a
deprecation warning, so the engine itself only ever makes one kind of call.

A handler that raises is logged and otherwise ignored: reporting a failure
must never be what stops a run.
"""

import inspect
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger

from maintenance_tasks.lib.engine.errors import ConfigurationError


@dataclass(frozen=True)
class RunContext:
    """Metadata about the run whose item failed, handed to the error handler."""

    task_name: str
    run_id: str
    started_at: datetime | None = None
    tick_count: int = 0
    cursor: str | None = None


ErrorHandler = Callable[[BaseException, RunContext, Any], None]


def default_error_handler(error: BaseException, context: RunContext, errored_item: Any) -> None:  # noqa: ARG001
    """Default handler: does nothing. The engine still logs the failure."""


def _positional_arity(handler: Callable[..., Any]) -> tuple[int, int] | None:
    """Return ``(positional, required)`` parameter counts, or None for ``*args``."""
    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError) as e:
        msg = f"Cannot inspect error handler signature: {handler!r}"
        raise ConfigurationError(msg) from e

    positional = 0
    required = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
            if param.default is inspect.Parameter.empty:
                required += 1
    return positional, required


def adapt_error_handler(handler: Callable[..., Any]) -> ErrorHandler:
    """Validate an error handler and adapt legacy arities to the current one.

    Args:
        handler: A callable taking ``(error, context, errored_item)``, or a legacy
            callable taking ``(error)`` or ``(error, context)``.

    Returns:
        A callable with the three-argument signature.

    Raises:
        ConfigurationError: If the handler is not callable or has an unusable arity.
    """
    if not callable(handler):
        msg = f"Error handler must be callable, got {handler!r}"
        raise ConfigurationError(msg)

    arity = _positional_arity(handler)
    if arity is None:
        return handler
    positional, required = arity
    if required > 3 or positional == 0:
        msg = (
            "Error handler should take three arguments: error, task_context, and errored_element "
            f"(got {positional} positional, {required} required)"
        )
        raise ConfigurationError(msg)
    if positional >= 3:
        return handler

    message = (
        "Error handlers should take three arguments: error, task_context, and errored_element. "
        f"Adapting legacy {positional}-argument handler {getattr(handler, '__qualname__', handler)!r}."
    )
    warnings.warn(message, DeprecationWarning, stacklevel=3)
    logger.warning(message)

    if positional == 1:

        def adapted(error: BaseException, context: RunContext, errored_item: Any) -> None:  # noqa: ARG001
            handler(error)

    else:

        def adapted(error: BaseException, context: RunContext, errored_item: Any) -> None:  # noqa: ARG001
            handler(error, context)

    adapted.legacy_handler = handler  # type: ignore[attr-defined]
    return adapted


def invoke_error_handler(
    handler: ErrorHandler,
    error: BaseException,
    context: RunContext,
    errored_item: Any,
) -> bool:
    """Call the handler, containing any exception it raises.

    Returns:
        True if the handler returned normally, False if it raised.
    """
    try:
        handler(error, context, errored_item)
    except Exception:
        logger.bind(run_id=context.run_id, task=context.task_name).exception(
            f"Error handler raised while reporting {type(error).__name__} for run {context.run_id}"
        )
        return False
    return True
