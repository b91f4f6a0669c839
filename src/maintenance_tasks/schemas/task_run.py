"""Task run Pydantic v2 read schemas."""

import math
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, computed_field


class PaginationMeta(BaseModel):
    """Pagination metadata included in paginated listings."""

    total: int = Field(description="Total number of items")
    page: int = Field(description="Current page number")
    page_size: int = Field(description="Items per page")
    total_pages: int = Field(description="Total number of pages")

    @classmethod
    def build(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        total_pages = math.ceil(total / page_size) if total else 0
        return cls(total=total, page=page, page_size=page_size, total_pages=total_pages)


class TaskRunResponse(BaseModel):
    """Task run status, progress, and error metadata."""

    id: UUID
    task_name: str
    status: str
    cursor: str | None = None
    tick_count: int = 0
    tick_total: int | None = None
    time_running: float = 0.0
    pause_requested: bool = False
    cancel_requested: bool = False
    error_class: str | None = None
    error_message: str | None = None
    backtrace: list[str] | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress_percent(self) -> float | None:
        """Percentage of ``tick_total`` processed, when the total is known."""
        if not self.tick_total:
            return None
        return round(min(self.tick_count / self.tick_total, 1.0) * 100, 2)


class PaginatedTaskRunResponse(BaseModel):
    """Paginated list of task runs."""

    items: list[TaskRunResponse]
    pagination: PaginationMeta
