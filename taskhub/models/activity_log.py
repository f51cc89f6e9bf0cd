"""
ActivityLog ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from taskhub.models.base import JSONType, Base, UUIDMixin, enum_type, utcnow


class ActivityAction(str, enum.Enum):
    # User
    user_registered = "user_registered"
    user_login = "user_login"
    # Team
    team_created = "team_created"
    team_updated = "team_updated"
    team_deleted = "team_deleted"
    member_added = "member_added"
    member_removed = "member_removed"
    member_role_changed = "member_role_changed"
    # Project
    project_created = "project_created"
    project_updated = "project_updated"
    project_deleted = "project_deleted"
    # Task
    task_created = "task_created"
    task_updated = "task_updated"
    task_deleted = "task_deleted"
    task_status_changed = "task_status_changed"
    task_assigned = "task_assigned"
    task_unassigned = "task_unassigned"


class ActivityLog(Base, UUIDMixin):
    """
    Append-only audit entry.

    team_id / project_id / task_id carry no foreign keys: they say which
    entity an entry concerns, they do not keep that entity alive.
    """

    __tablename__ = "activity_log"
    __table_args__ = (
        Index("ix_activity_log_user_created", "user_id", "created_at"),
        Index("ix_activity_log_team_created", "team_id", "created_at"),
        Index("ix_activity_log_project_created", "project_id", "created_at"),
        Index("ix_activity_log_task_created", "task_id", "created_at"),
    )

    action: Mapped[ActivityAction] = mapped_column(
        enum_type(ActivityAction, "activity_action"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[UUID | None] = mapped_column(nullable=True)
    project_id: Mapped[UUID | None] = mapped_column(nullable=True)
    task_id: Mapped[UUID | None] = mapped_column(nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<ActivityLog id={self.id} action={self.action.value!r} user_id={self.user_id}>"
