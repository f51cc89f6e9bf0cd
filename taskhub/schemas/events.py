"""
Real-time event payloads.

Every event goes over the wire as {"event": <name>, "data": <payload>}.
Payloads always identify the entity, its scope and the actor; status, role
and priority events add the new value and the previous one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from taskhub.models.base import utcnow


class EventPayload(BaseModel):
    actor_id: UUID
    actor_name: str
    timestamp: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Team
# ---------------------------------------------------------------------------

class TeamEvent(EventPayload):
    team_id: UUID
    name: str


class MemberEvent(EventPayload):
    team_id: UUID
    team_name: str
    user_id: UUID
    role: str | None = None
    previous_role: str | None = None


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------

class ProjectEvent(EventPayload):
    project_id: UUID
    team_id: UUID
    name: str
    status: str | None = None


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

class TaskEvent(EventPayload):
    task_id: UUID
    project_id: UUID
    team_id: UUID
    title: str
    status: str | None = None
    priority: str | None = None
    assigned_to: UUID | None = None


class TaskStatusEvent(TaskEvent):
    old_status: str
    new_status: str


class TaskAssignmentEvent(TaskEvent):
    assignee_id: UUID | None = None
    previous_assignee_id: UUID | None = None


# ---------------------------------------------------------------------------
# Direct notifications
# ---------------------------------------------------------------------------

class NotificationPayload(BaseModel):
    """Sent as the "notification" event to a single user's room."""

    type: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


class ErrorPayload(BaseModel):
    """Sent as the "error" event to the offending connection only."""

    code: str = "BAD_REQUEST"
    message: str


# ---------------------------------------------------------------------------
# Client messages
# ---------------------------------------------------------------------------

class RoomRequest(BaseModel):
    """{"action": "join" | "leave", "room": "team" | "project" | "task", "id": ...}"""

    action: Literal["join", "leave"]
    room: Literal["team", "project", "task"]
    id: UUID
