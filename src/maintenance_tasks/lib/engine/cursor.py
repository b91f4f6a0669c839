"""Cursor serialization for durable storage on the run record.

A cursor position is whatever the task's enumerator hands back after each
item: a primary key, a list index, a composite key, and so on. The engine
never looks inside it; it only stores it as a compact JSON string and hands
the decoded value back to the enumerator on resume.

Positions may be JSON values (None, bool, int, float, str, lists and
string-keyed dicts) plus the usual database key types: ``uuid.UUID``,
``datetime``, ``date`` and ``Decimal``. Those are stored as single-key tagged
objects (``{"$uuid": "..."}``) and come back as the same type. Tuples are
accepted and come back as lists. Dicts whose only key is one of the tags are
reserved.
"""

import json
import uuid
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from maintenance_tasks.lib.engine.errors import CursorError

CursorPosition = Any

_DECODERS: dict[str, Callable[[str], Any]] = {
    "$uuid": uuid.UUID,
    "$datetime": datetime.fromisoformat,
    "$date": date.fromisoformat,
    "$decimal": Decimal,
}


def _tag(value: Any) -> dict[str, str]:
    if isinstance(value, uuid.UUID):
        return {"$uuid": str(value)}
    # datetime is a date subclass; check it first
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, Decimal):
        return {"$decimal": str(value)}
    msg = f"{type(value).__name__} is not a cursor type"
    raise TypeError(msg)


def _untag(obj: dict[str, Any]) -> Any:
    if len(obj) == 1:
        ((tag, raw),) = obj.items()
        decoder = _DECODERS.get(tag)
        if decoder is not None and isinstance(raw, str):
            return decoder(raw)
    return obj


def encode_cursor(position: CursorPosition) -> str:
    """Encode a cursor position into a string safe for storage.

    Args:
        position: Position produced by an enumerator.

    Returns:
        Deterministic compact JSON text.

    Raises:
        CursorError: If the position holds a value that is not a cursor type.
    """
    try:
        return json.dumps(position, separators=(",", ":"), sort_keys=True, allow_nan=False, default=_tag)
    except (TypeError, ValueError) as e:
        msg = f"Cursor position is not serializable: {position!r}"
        raise CursorError(msg) from e


def decode_cursor(value: str | None) -> CursorPosition | None:
    """Decode a stored cursor string.

    Args:
        value: Stored cursor text, or None.

    Returns:
        The original position, or None when the run should start from the beginning.

    Raises:
        CursorError: If the stored text is not valid cursor JSON.
    """
    if value is None or not value.strip():
        return None
    try:
        return json.loads(value, object_hook=_untag)
    except (ValueError, ArithmeticError) as e:
        msg = f"Invalid cursor: {value!r}"
        raise CursorError(msg) from e
