"""
Project ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from taskhub.models.base import Base, TimestampMixin, UUIDMixin, as_utc, enum_type


class ProjectStatus(str, enum.Enum):
    planning = "Planning"
    active = "Active"
    on_hold = "On Hold"
    completed = "Completed"
    cancelled = "Cancelled"


class Project(Base, UUIDMixin, TimestampMixin):
    """A body of work owned by a team."""

    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR end_date >= start_date",
            name="ck_projects_date_order",
        ),
    )

    team_id: Mapped[UUID] = mapped_column(
        ForeignKey("teams.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(
        enum_type(ProjectStatus, "project_status"),
        nullable=False,
        default=ProjectStatus.planning,
        index=True,
    )
    created_by: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.name!r} team_id={self.team_id}>"


def dates_in_order(start: datetime | None, end: datetime | None) -> bool:
    if start is None or end is None:
        return True
    return as_utc(end) >= as_utc(start)


def duration_days(start: datetime | None, end: datetime | None) -> int | None:
    """Whole days between start and end date, rounded up."""
    if start is None or end is None:
        return None
    delta = abs(as_utc(end) - as_utc(start))
    days, remainder = divmod(delta.total_seconds(), 86400)
    return int(days) + (1 if remainder else 0)
