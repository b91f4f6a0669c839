"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from maintenance_tasks.models.task_run import TaskRun

__all__ = [
    "TaskRun",
]
