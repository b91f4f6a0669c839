"""TaskRun model: one tracked execution of a maintenance task."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from maintenance_tasks.lib.engine.state import RunStatus
from maintenance_tasks.models.base import Base, UUIDMixin


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TaskRun(Base, UUIDMixin):
    """Tracks a task run's status, cursor, and progress for checkpoint/resume.

    The engine is the only writer of ``status``, ``cursor`` and ``tick_count``;
    operators only set the ``pause_requested`` / ``cancel_requested`` flags.
    """

    __tablename__ = "task_runs"

    task_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RunStatus.ENQUEUED.value,
        server_default=RunStatus.ENQUEUED.value,
    )

    # Checkpoint for resume
    cursor: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Progress
    tick_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    tick_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    time_running: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    # Out-of-band requests
    pause_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    cancel_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    # Error tracking
    error_class: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    backtrace: Mapped[list[str] | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    # Metadata
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("tick_count >= 0", name="ck_task_runs_tick_count_non_negative"),
        Index("ix_task_runs_status", "status"),
        Index("ix_task_runs_task_name_created_at", "task_name", "created_at"),
    )
