"""
Event fan-out router.

Turns each committed mutation into room-scoped events and direct user
notifications. Delivery is best effort: a transport failure is logged and
never reaches the caller, whose change is already durable.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol
from uuid import UUID

from pydantic import BaseModel

from taskhub.core.websocket import project_room, task_room, team_room, user_room
from taskhub.models.project import Project
from taskhub.models.task import Task
from taskhub.models.team import Team
from taskhub.models.user import User
from taskhub.schemas.events import (
    MemberEvent,
    NotificationPayload,
    ProjectEvent,
    TaskAssignmentEvent,
    TaskEvent,
    TaskStatusEvent,
    TeamEvent,
)

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def emit_to_room(self, room: str, event: str, data: dict[str, Any]) -> None: ...


class NullTransport:
    """Used when no live connections are attached (tests, workers)."""

    async def emit_to_room(self, room: str, event: str, data: dict[str, Any]) -> None:
        return None


def _value(v: Any) -> Any:
    return getattr(v, "value", v)


class FanoutRouter:
    """Maps domain mutations onto rooms."""

    def __init__(self, transport: Transport | None = None) -> None:
        self.transport: Transport = transport if transport is not None else NullTransport()

    # -----------------------------------------------------------------------
    # Team
    # -----------------------------------------------------------------------

    async def team_created(self, team: Team, actor: User) -> None:
        payload = TeamEvent(team_id=team.id, name=team.name, actor_id=actor.id, actor_name=actor.name)
        await self._emit([user_room(actor.id)], "team:created", payload)

    async def team_updated(self, team: Team, actor: User) -> None:
        payload = TeamEvent(team_id=team.id, name=team.name, actor_id=actor.id, actor_name=actor.name)
        await self._emit([team_room(team.id)], "team:updated", payload)

    async def team_deleted(self, team_id: UUID, name: str, actor: User) -> None:
        payload = TeamEvent(team_id=team_id, name=name, actor_id=actor.id, actor_name=actor.name)
        await self._emit([team_room(team_id)], "team:deleted", payload)

    async def member_added(self, team: Team, user_id: UUID, role: Any, actor: User) -> None:
        payload = MemberEvent(
            team_id=team.id,
            team_name=team.name,
            user_id=user_id,
            role=_value(role),
            actor_id=actor.id,
            actor_name=actor.name,
        )
        await self._emit([team_room(team.id)], "team:member:added", payload)
        await self._notify(
            user_id,
            NotificationPayload(
                type="info",
                title="Added to team",
                message=f"{actor.name} added you to {team.name}",
                data={"team_id": str(team.id), "role": _value(role)},
            ),
        )

    async def member_removed(self, team: Team, user_id: UUID, actor: User) -> None:
        payload = MemberEvent(
            team_id=team.id,
            team_name=team.name,
            user_id=user_id,
            actor_id=actor.id,
            actor_name=actor.name,
        )
        await self._emit([team_room(team.id)], "team:member:removed", payload)
        await self._notify(
            user_id,
            NotificationPayload(
                type="warning",
                title="Removed from team",
                message=f"{actor.name} removed you from {team.name}",
                data={"team_id": str(team.id)},
            ),
        )

    async def member_role_changed(
        self, team: Team, user_id: UUID, role: Any, previous_role: Any, actor: User
    ) -> None:
        payload = MemberEvent(
            team_id=team.id,
            team_name=team.name,
            user_id=user_id,
            role=_value(role),
            previous_role=_value(previous_role),
            actor_id=actor.id,
            actor_name=actor.name,
        )
        await self._emit([team_room(team.id)], "team:member:role:changed", payload)
        await self._notify(
            user_id,
            NotificationPayload(
                type="info",
                title="Role changed",
                message=f"Your role in {team.name} is now {_value(role)}",
                data={"team_id": str(team.id), "role": _value(role), "previous_role": _value(previous_role)},
            ),
        )

    # -----------------------------------------------------------------------
    # Project
    # -----------------------------------------------------------------------

    async def project_created(self, project: Project, actor: User) -> None:
        await self._emit(
            [team_room(project.team_id)], "project:created", self._project_payload(project, actor)
        )

    async def project_updated(self, project: Project, actor: User) -> None:
        await self._emit(
            [team_room(project.team_id), project_room(project.id)],
            "project:updated",
            self._project_payload(project, actor),
        )

    async def project_deleted(self, project_id: UUID, team_id: UUID, name: str, actor: User) -> None:
        payload = ProjectEvent(
            project_id=project_id, team_id=team_id, name=name, actor_id=actor.id, actor_name=actor.name
        )
        await self._emit([team_room(team_id), project_room(project_id)], "project:deleted", payload)

    # -----------------------------------------------------------------------
    # Task
    # -----------------------------------------------------------------------

    async def task_created(self, task: Task, team_id: UUID, actor: User) -> None:
        await self._emit(
            [project_room(task.project_id)], "task:created", self._task_payload(task, team_id, actor)
        )
        if task.assigned_to is not None:
            await self._notify(
                task.assigned_to,
                NotificationPayload(
                    type="info",
                    title="New task assigned",
                    message=f"{actor.name} assigned you \"{task.title}\"",
                    data={"task_id": str(task.id), "project_id": str(task.project_id)},
                ),
            )

    async def task_updated(self, task: Task, team_id: UUID, actor: User) -> None:
        await self._emit(
            [project_room(task.project_id), task_room(task.id)],
            "task:updated",
            self._task_payload(task, team_id, actor),
        )

    async def task_status_changed(
        self, task: Task, team_id: UUID, old_status: Any, new_status: Any, actor: User
    ) -> None:
        payload = TaskStatusEvent(
            **self._task_fields(task, team_id, actor),
            old_status=_value(old_status),
            new_status=_value(new_status),
        )
        await self._emit(
            [project_room(task.project_id), task_room(task.id)], "task:status:changed", payload
        )
        if task.assigned_to is not None and task.assigned_to != actor.id:
            await self._notify(
                task.assigned_to,
                NotificationPayload(
                    type="info",
                    title="Task status changed",
                    message=f"\"{task.title}\" moved from {_value(old_status)} to {_value(new_status)}",
                    data={"task_id": str(task.id), "old_status": _value(old_status), "new_status": _value(new_status)},
                ),
            )

    async def task_assigned(
        self, task: Task, team_id: UUID, assignee_id: UUID, previous_assignee_id: UUID | None, actor: User
    ) -> None:
        payload = TaskAssignmentEvent(
            **self._task_fields(task, team_id, actor),
            assignee_id=assignee_id,
            previous_assignee_id=previous_assignee_id,
        )
        await self._emit([project_room(task.project_id), task_room(task.id)], "task:assigned", payload)
        await self._notify(
            assignee_id,
            NotificationPayload(
                type="info",
                title="Task assigned",
                message=f"{actor.name} assigned you \"{task.title}\"",
                data={"task_id": str(task.id), "project_id": str(task.project_id)},
            ),
        )

    async def task_unassigned(
        self, task: Task, team_id: UUID, previous_assignee_id: UUID, actor: User
    ) -> None:
        payload = TaskAssignmentEvent(
            **self._task_fields(task, team_id, actor),
            previous_assignee_id=previous_assignee_id,
        )
        await self._emit([project_room(task.project_id), task_room(task.id)], "task:unassigned", payload)
        await self._notify(
            previous_assignee_id,
            NotificationPayload(
                type="info",
                title="Task unassigned",
                message=f"You are no longer assigned to \"{task.title}\"",
                data={"task_id": str(task.id), "project_id": str(task.project_id)},
            ),
        )

    async def task_deleted(
        self, task_id: UUID, project_id: UUID, team_id: UUID, title: str, actor: User
    ) -> None:
        payload = TaskEvent(
            task_id=task_id,
            project_id=project_id,
            team_id=team_id,
            title=title,
            actor_id=actor.id,
            actor_name=actor.name,
        )
        await self._emit([project_room(project_id), task_room(task_id)], "task:deleted", payload)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def _project_payload(project: Project, actor: User) -> ProjectEvent:
        return ProjectEvent(
            project_id=project.id,
            team_id=project.team_id,
            name=project.name,
            status=_value(project.status),
            actor_id=actor.id,
            actor_name=actor.name,
        )

    @staticmethod
    def _task_fields(task: Task, team_id: UUID, actor: User) -> dict[str, Any]:
        return {
            "task_id": task.id,
            "project_id": task.project_id,
            "team_id": team_id,
            "title": task.title,
            "status": _value(task.status),
            "priority": _value(task.priority),
            "assigned_to": task.assigned_to,
            "actor_id": actor.id,
            "actor_name": actor.name,
        }

    def _task_payload(self, task: Task, team_id: UUID, actor: User) -> TaskEvent:
        return TaskEvent(**self._task_fields(task, team_id, actor))

    async def _notify(self, user_id: UUID, notification: NotificationPayload) -> None:
        await self._emit([user_room(user_id)], "notification", notification)

    async def _emit(self, rooms: list[str], event: str, payload: BaseModel) -> None:
        data = payload.model_dump(mode="json")
        for room in rooms:
            try:
                await self.transport.emit_to_room(room, event, data)
            except Exception as exc:
                logger.warning("Failed to emit %s to %s: %s", event, room, exc)
