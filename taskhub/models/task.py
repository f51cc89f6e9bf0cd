"""
Task ORM model.
"""

from __future__ import annotations

import enum
import math
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from taskhub.models.base import JSONType, Base, TimestampMixin, UUIDMixin, as_utc, enum_type, utcnow

MAX_TAGS = 10


class TaskStatus(str, enum.Enum):
    todo = "To Do"
    in_progress = "In Progress"
    review = "Review"
    done = "Done"


class TaskPriority(str, enum.Enum):
    low = "Low"
    medium = "Medium"
    high = "High"
    urgent = "Urgent"


class Task(Base, UUIDMixin, TimestampMixin):
    """Represents a work item within a project."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_project_status", "project_id", "status"),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_to: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Written only through services.lifecycle.apply_transition after creation.
    status: Mapped[TaskStatus] = mapped_column(
        enum_type(TaskStatus, "task_status"),
        nullable=False,
        default=TaskStatus.todo,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        enum_type(TaskPriority, "task_priority"),
        nullable=False,
        default=TaskPriority.medium,
        index=True,
    )
    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<Task id={self.id} title={self.title!r} status={self.status}>"


def is_overdue(
    due_date: datetime | None, status: TaskStatus, now: datetime | None = None
) -> bool:
    if due_date is None or status == TaskStatus.done:
        return False
    return (now or utcnow()) > as_utc(due_date)


def days_until_due(due_date: datetime | None, now: datetime | None = None) -> int | None:
    if due_date is None:
        return None
    delta = as_utc(due_date) - (now or utcnow())
    return math.ceil(delta.total_seconds() / 86400)
