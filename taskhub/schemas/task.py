"""
Task schemas.

Request/response models for task CRUD, status changes and assignment.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, computed_field, field_validator

from taskhub.models.task import MAX_TAGS, TaskPriority, TaskStatus, days_until_due, is_overdue
from taskhub.schemas.common import UserSummaryResponse


def _clean_tags(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    tags = [t.strip() for t in v if t.strip()]
    if len(tags) > MAX_TAGS:
        raise ValueError(f"Cannot have more than {MAX_TAGS} tags")
    return tags


# ---------------------------------------------------------------------------
# Task Create / Update
# ---------------------------------------------------------------------------

class TaskCreateRequest(BaseModel):
    """Request body for POST /projects/{project_id}/tasks."""

    title: str = Field(min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    assigned_to: UUID | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class TaskUpdateRequest(BaseModel):
    """Request body for PATCH /tasks/{task_id}."""

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    tags: list[str] | None = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class TaskStatusUpdateRequest(BaseModel):
    """Request body for PATCH /tasks/{task_id}/status."""

    status: TaskStatus


class TaskAssignRequest(BaseModel):
    """Request body for PATCH /tasks/{task_id}/assign."""

    assignee_id: UUID


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class TaskResponse(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    description: str | None
    assigned_to: UUID | None
    created_by: UUID
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None
    tags: list[str]
    created_at: datetime
    updated_at: datetime
    assignee: UserSummaryResponse | None = None

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_overdue(self) -> bool:
        return is_overdue(self.due_date, self.status)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def days_until_due(self) -> int | None:
        return days_until_due(self.due_date)


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    total: int
