"""Unit tests for backtrace capture and cleaning."""

from maintenance_tasks.lib.engine.backtrace import PatternBacktraceCleaner, format_backtrace


def _raise_inner() -> None:
    msg = "deep failure"
    raise RuntimeError(msg)


def _captured() -> RuntimeError:
    try:
        _raise_inner()
    except RuntimeError as e:
        return e
    raise AssertionError


class TestFormatBacktrace:
    """Tests for format_backtrace."""

    def test_one_entry_per_frame(self) -> None:
        lines = format_backtrace(_captured())
        assert len(lines) == 2
        assert "_raise_inner" in lines[-1]
        assert not any(line.endswith("\n") for line in lines)

    def test_error_without_traceback(self) -> None:
        assert format_backtrace(ValueError("never raised")) == []

    def test_cleaner_applied(self) -> None:
        lines = format_backtrace(_captured(), PatternBacktraceCleaner([r"in _raise_inner"]))
        assert len(lines) == 1
        assert "_captured" in lines[0]


class TestPatternBacktraceCleaner:
    """Tests for PatternBacktraceCleaner."""

    def test_drops_matching_lines(self) -> None:
        cleaner = PatternBacktraceCleaner([r"site-packages", r"^\s*File \"<frozen"])
        lines = ['File "/app/task.py", line 3', 'File "/venv/site-packages/sqlalchemy/orm.py"', 'File "<frozen os>"']
        assert cleaner(lines) == ['File "/app/task.py", line 3']

    def test_no_patterns_keeps_everything(self) -> None:
        assert PatternBacktraceCleaner([""])(["a", "b"]) == ["a", "b"]
