"""Fixtures for CLI tests: a file-backed database and an importable task module."""

import sys
import textwrap
from collections.abc import Iterator
from pathlib import Path

import pytest

from maintenance_tasks.core.logging import setup_logging
from maintenance_tasks.lib.engine.task import registry

TASK_MODULE = "cli_demo_tasks"

TASK_SOURCE = textwrap.dedent(
    '''
    from maintenance_tasks.lib.engine import MaintenanceTask, on_sequence, registry


    @registry.register
    class CountTask(MaintenanceTask):
        def enumerate(self, cursor):
            return on_sequence([1, 2, 3], cursor)

        def process(self, item):
            pass

        def count(self):
            return 3


    @registry.register
    class FlakyItemTask(MaintenanceTask):
        def enumerate(self, cursor):
            return on_sequence([1, 2, 3], cursor)

        def process(self, item):
            if item == 2:
                raise ValueError("bad row 2")


    FAILURES = []


    def record_failure(error, context, item):
        FAILURES.append((type(error).__name__, str(error), context.task_name, context.run_id, item))


    def four_argument_handler(error, context, item, extra):
        pass


    @registry.register
    class ExplodingTask(MaintenanceTask):
        def enumerate(self, cursor):
            raise RuntimeError("source unavailable")

        def process(self, item):
            pass
    '''
)


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the CLI at a temporary database and make the demo task module importable."""
    (tmp_path / f"{TASK_MODULE}.py").write_text(TASK_SOURCE)
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    monkeypatch.delenv("TASKS_IMPORT", raising=False)
    monkeypatch.delenv("TASKS_MODULE", raising=False)
    monkeypatch.delenv("ERROR_HANDLER", raising=False)

    yield tmp_path

    sys.modules.pop(TASK_MODULE, None)
    registry._tasks.pop("CountTask", None)
    registry._tasks.pop("ExplodingTask", None)
    registry._tasks.pop("FlakyItemTask", None)
    registry.namespace = "Maintenance"
    setup_logging("WARNING")


@pytest.fixture
def with_tasks(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Load the demo task module through TASKS_IMPORT."""
    monkeypatch.setenv("TASKS_IMPORT", TASK_MODULE)
    return cli_env
