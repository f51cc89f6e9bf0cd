"""
Activity read endpoints' business logic.

Each query checks the caller may see the scope, then reads through the
ledger. Entries come back newest first with the acting user attached.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from taskhub.models.activity_log import ActivityLog
from taskhub.models.base import as_utc
from taskhub.models.user import User
from taskhub.schemas.activity import ActivityListResponse, ActivityResponse
from taskhub.schemas.common import UserSummaryResponse
from taskhub.services.base import ServiceBase


class ActivityService(ServiceBase):
    """Scoped activity queries."""

    async def team_activity(self, team_id: UUID, actor: User, limit: int | None = None) -> ActivityListResponse:
        team = await self._get_team(team_id)
        self._require_member(team, actor)
        return await self._to_list(await self.ledger.for_team(team.id, limit))

    async def project_activity(
        self, project_id: UUID, actor: User, limit: int | None = None
    ) -> ActivityListResponse:
        project, _ = await self._project_context(project_id, actor)
        return await self._to_list(await self.ledger.for_project(project.id, limit))

    async def task_activity(self, task_id: UUID, actor: User) -> ActivityListResponse:
        task, _, _ = await self._task_context(task_id, actor)
        return await self._to_list(await self.ledger.for_task(task.id))

    async def my_activity(self, actor: User, limit: int | None = None) -> ActivityListResponse:
        return await self._to_list(await self.ledger.for_user(actor.id, limit))

    async def activity_in_range(
        self,
        actor: User,
        start: datetime,
        end: datetime,
        team_id: UUID | None = None,
        project_id: UUID | None = None,
        limit: int | None = None,
    ) -> ActivityListResponse:
        """Actor's own entries between start and end, optionally within a team or project."""
        if team_id is not None:
            team = await self._get_team(team_id)
            self._require_member(team, actor)
        if project_id is not None:
            await self._project_context(project_id, actor)
        entries = await self.ledger.in_range(
            start, end, actor.id, team_id=team_id, project_id=project_id, limit=limit
        )
        return await self._to_list(entries)

    async def _to_list(self, entries: list[ActivityLog]) -> ActivityListResponse:
        users = await self._load_users({e.user_id for e in entries})
        activities = [
            ActivityResponse(
                id=e.id,
                action=e.action.value,
                user_id=e.user_id,
                team_id=e.team_id,
                project_id=e.project_id,
                task_id=e.task_id,
                description=e.description,
                metadata=e.meta or {},
                created_at=as_utc(e.created_at),
                user=UserSummaryResponse.model_validate(users[e.user_id]) if e.user_id in users else None,
            )
            for e in entries
        ]
        return ActivityListResponse(activities=activities, total=len(activities))
