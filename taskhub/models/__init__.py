"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from taskhub.models.base import Base, TimestampMixin, UUIDMixin
from taskhub.models.user import User, UserRole
from taskhub.models.team import Team, TeamMember, TeamRole
from taskhub.models.project import Project, ProjectStatus
from taskhub.models.task import Task, TaskPriority, TaskStatus
from taskhub.models.activity_log import ActivityAction, ActivityLog

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "UserRole",
    "Team",
    "TeamMember",
    "TeamRole",
    "Project",
    "ProjectStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "ActivityAction",
    "ActivityLog",
]
