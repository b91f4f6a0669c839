"""Unit tests for the task interface and registry."""

from typing import Any

import pytest

from maintenance_tasks.lib.engine.enumerator import on_sequence
from maintenance_tasks.lib.engine.errors import TaskNotFoundError
from maintenance_tasks.lib.engine.task import MaintenanceTask, TaskRegistry


class UpdatePostsTask(MaintenanceTask):
    def enumerate(self, cursor: Any) -> Any:
        return on_sequence([1, 2], cursor)

    def process(self, item: Any) -> None:
        pass


class TestMaintenanceTask:
    """Tests for MaintenanceTask defaults."""

    def test_optional_capabilities_default(self) -> None:
        task = UpdatePostsTask()
        assert task.count() is None
        assert task.on_error(ValueError(), 1) is False
        assert task.minimum_tick_interval is None

    def test_abstract_methods_required(self) -> None:
        class Incomplete(MaintenanceTask):
            def process(self, item: Any) -> None:
                pass

        with pytest.raises(TypeError):
            Incomplete()  # type: ignore[abstract]


class TestTaskRegistry:
    """Tests for TaskRegistry."""

    def test_register_returns_class(self, task_registry: TaskRegistry) -> None:
        assert task_registry.register(UpdatePostsTask) is UpdatePostsTask

    def test_identifier_uses_namespace(self, task_registry: TaskRegistry) -> None:
        task_registry.register(UpdatePostsTask)
        assert task_registry.names() == ["Maintenance.UpdatePostsTask"]

    def test_resolve_full_and_bare_names(self, task_registry: TaskRegistry) -> None:
        task_registry.register(UpdatePostsTask)
        assert task_registry.resolve_name("Maintenance.UpdatePostsTask") == "Maintenance.UpdatePostsTask"
        assert task_registry.resolve_name("UpdatePostsTask") == "Maintenance.UpdatePostsTask"
        assert "UpdatePostsTask" in task_registry
        assert 42 not in task_registry

    def test_unknown_task_raises(self, task_registry: TaskRegistry) -> None:
        with pytest.raises(TaskNotFoundError, match="Maintenance.Missing"):
            task_registry.resolve_name("Maintenance.Missing")
        assert "Missing" not in task_registry

    def test_namespace_change_after_registration(self, task_registry: TaskRegistry) -> None:
        task_registry.register(UpdatePostsTask)
        task_registry.namespace = "Ops"
        assert task_registry.names() == ["Ops.UpdatePostsTask"]
        assert task_registry.get("Ops.UpdatePostsTask") is UpdatePostsTask
        with pytest.raises(TaskNotFoundError):
            task_registry.resolve_name("Maintenance.UpdatePostsTask")

    def test_build_instantiates(self, task_registry: TaskRegistry) -> None:
        task_registry.register(UpdatePostsTask)
        assert isinstance(task_registry.build("UpdatePostsTask"), UpdatePostsTask)

    def test_duck_typed_task_accepted(self, task_registry: TaskRegistry) -> None:
        @task_registry.register
        class PlainTask:
            def enumerate(self, cursor: Any) -> Any:
                return []

            def process(self, item: Any) -> None:
                pass

        assert task_registry.get("PlainTask") is PlainTask

    def test_missing_process_rejected(self, task_registry: TaskRegistry) -> None:
        class NoProcess:
            def enumerate(self, cursor: Any) -> Any:
                return []

        with pytest.raises(TypeError, match="process"):
            task_registry.register(NoProcess)

    def test_duplicate_name_rejected(self, task_registry: TaskRegistry) -> None:
        task_registry.register(UpdatePostsTask)
        task_registry.register(UpdatePostsTask)

        class UpdatePostsTask2(UpdatePostsTask):
            pass

        UpdatePostsTask2.__name__ = "UpdatePostsTask"
        with pytest.raises(ValueError, match="already registered"):
            task_registry.register(UpdatePostsTask2)
