"""Create task_runs table.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "task_runs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("task_name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="enqueued"),
        sa.Column("cursor", sa.Text, nullable=True),
        sa.Column("tick_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("tick_total", sa.Integer, nullable=True),
        sa.Column("time_running", sa.Float, nullable=False, server_default="0"),
        sa.Column("pause_requested", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("cancel_requested", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("error_class", sa.String(255), nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("backtrace", JSONB, nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("tick_count >= 0", name="ck_task_runs_tick_count_non_negative"),
    )
    op.create_index("ix_task_runs_status", "task_runs", ["status"])
    op.create_index("ix_task_runs_task_name_created_at", "task_runs", ["task_name", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_task_runs_task_name_created_at", table_name="task_runs")
    op.drop_index("ix_task_runs_status", table_name="task_runs")
    op.drop_table("task_runs")
