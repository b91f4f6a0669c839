"""Task capability interface and the task registry.

A task supplies the two things the engine cannot know: how to enumerate its
collection from a cursor and how to process one item (or batch). Everything
else is optional::

    registry = TaskRegistry(namespace="Maintenance")


    @registry.register
    class BackfillSlugsTask(MaintenanceTask):
        minimum_tick_interval = 2.0

        def enumerate(self, cursor):
            return on_sequence(load_posts(), cursor)

        def process(self, post):
            post.slug = slugify(post.title)
"""

from abc import ABC, abstractmethod
from typing import Any, TypeVar

from maintenance_tasks.lib.engine.enumerator import PairSource
from maintenance_tasks.lib.engine.errors import TaskNotFoundError


class MaintenanceTask(ABC):
    """Base class for tasks run by the engine.

    Attributes:
        minimum_tick_interval: Optional per-task override (seconds) of the
            configured ticker delay.
    """

    minimum_tick_interval: float | None = None

    @abstractmethod
    def enumerate(self, cursor: Any) -> PairSource:
        """Return ``(item, cursor_after_item)`` pairs starting after ``cursor``.

        May return a plain iterable or an async iterable. ``cursor`` is None on
        the first slice.
        """

    @abstractmethod
    def process(self, item: Any) -> Any:
        """Process one item. May be a coroutine function. Raising marks a per-item failure."""

    def count(self) -> int | None:
        """Return the total number of items, if cheaply known."""
        return None

    def on_error(self, error: BaseException, item: Any) -> bool:  # noqa: ARG002
        """Hook called after a per-item failure.

        Returns:
            True to mark the whole run as errored; False (default) to keep going.
        """
        return False


TaskT = TypeVar("TaskT", bound=type)


class TaskRegistry:
    """Maps task identifiers to task classes.

    Identifiers are ``<namespace>.<ClassName>``; lookups also accept the bare
    class name. The namespace can be changed after tasks were registered (the
    CLI sets it from settings before running anything).

    Args:
        namespace: Prefix for task identifiers (the configured tasks module).
    """

    def __init__(self, namespace: str = "Maintenance") -> None:
        self.namespace = namespace
        self._tasks: dict[str, type] = {}

    def identifier_for(self, task_class: type) -> str:
        return f"{self.namespace}.{task_class.__name__}" if self.namespace else task_class.__name__

    def register(self, task_class: TaskT) -> TaskT:
        """Register a task class (usable as a class decorator).

        Raises:
            TypeError: If the class lacks ``enumerate`` or ``process``.
            ValueError: If another class is already registered under the same name.
        """
        for attribute in ("enumerate", "process"):
            if not callable(getattr(task_class, attribute, None)):
                msg = f"Task {task_class.__name__} must define {attribute}()"
                raise TypeError(msg)
        existing = self._tasks.get(task_class.__name__)
        if existing is not None and existing is not task_class:
            msg = f"Task {self.identifier_for(task_class)} is already registered"
            raise ValueError(msg)
        self._tasks[task_class.__name__] = task_class
        return task_class

    def resolve_name(self, name: str) -> str:
        """Return the canonical identifier for ``name``.

        Raises:
            TaskNotFoundError: If no such task is registered.
        """
        prefix = f"{self.namespace}." if self.namespace else ""
        bare = name[len(prefix) :] if prefix and name.startswith(prefix) else name
        task_class = self._tasks.get(bare)
        if task_class is None:
            msg = f"Task {name} not found"
            raise TaskNotFoundError(msg)
        return self.identifier_for(task_class)

    def get(self, name: str) -> type:
        """Return the task class registered under ``name``."""
        identifier = self.resolve_name(name)
        return self._tasks[identifier.rsplit(".", 1)[-1]]

    def build(self, name: str) -> Any:
        """Instantiate the task registered under ``name``."""
        return self.get(name)()

    def names(self) -> list[str]:
        return sorted(self.identifier_for(task_class) for task_class in self._tasks.values())

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        try:
            self.resolve_name(name)
        except TaskNotFoundError:
            return False
        return True


# Process-wide registry used by the CLI; tests build their own.
registry = TaskRegistry()
