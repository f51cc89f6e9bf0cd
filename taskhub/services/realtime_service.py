"""
Room subscription checks for live connections.

A connection may only join a room for something its user can currently
see: team membership for team rooms, membership of the owning team for
project and task rooms.
"""

from __future__ import annotations

from uuid import UUID

from taskhub.core.errors import BadRequestError
from taskhub.core.websocket import project_room, task_room, team_room
from taskhub.models.user import User
from taskhub.services.base import ServiceBase

ROOM_KINDS = ("team", "project", "task")


class RealtimeService(ServiceBase):
    async def authorize_room(self, actor: User, kind: str, entity_id: UUID) -> str:
        """Return the room name if actor may join it; raise otherwise."""
        if kind == "team":
            team = await self._get_team(entity_id)
            self._require_member(team, actor)
            return team_room(team.id)
        if kind == "project":
            project, _ = await self._project_context(entity_id, actor)
            return project_room(project.id)
        if kind == "task":
            task, _, _ = await self._task_context(entity_id, actor)
            return task_room(task.id)
        raise BadRequestError(f"Unknown room type {kind!r}", code="INVALID_ROOM")
