"""Backtrace capture and cleaning for errored runs."""

import re
import traceback
from collections.abc import Callable, Iterable

BacktraceCleaner = Callable[[list[str]], list[str]]


class PatternBacktraceCleaner:
    """Drops backtrace lines matching any of the given regular expressions.

    Useful to strip interpreter and third-party frames (``site-packages``) so
    the stored backtrace points at task code.

    Args:
        patterns: Regular expressions; a line matching any of them is removed.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self._patterns = [re.compile(p) for p in patterns if p]

    def __call__(self, lines: list[str]) -> list[str]:
        if not self._patterns:
            return list(lines)
        return [line for line in lines if not any(p.search(line) for p in self._patterns)]


def format_backtrace(error: BaseException, cleaner: BacktraceCleaner | None = None) -> list[str]:
    """Return the error's traceback as one string per frame, optionally cleaned."""
    lines = [entry.rstrip("\n") for entry in traceback.format_tb(error.__traceback__)]
    return cleaner(lines) if cleaner is not None else lines
