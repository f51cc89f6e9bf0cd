"""
Shared lookups and access checks for the orchestration services.

Every service works on one request-scoped session, writes its ledger entry
through ActivityLedger on that same session, commits, and only then hands the
change to the fan-out router.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from taskhub.core.errors import ConcurrentModificationError, ForbiddenError, NotFoundError
from taskhub.models.base import utcnow
from taskhub.models.project import Project
from taskhub.models.task import Task
from taskhub.models.team import Team
from taskhub.models.user import User
from taskhub.services import membership
from taskhub.services.activity_ledger import ActivityLedger
from taskhub.services.fanout import FanoutRouter

logger = logging.getLogger(__name__)


def jsonable(value: Any) -> Any:
    """Plain value for ledger metadata: enums to their value, datetimes to ISO strings."""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return getattr(value, "value", value)


class ServiceBase:
    def __init__(self, db: AsyncSession, fanout: FanoutRouter | None = None) -> None:
        self.db = db
        self.ledger = ActivityLedger(db)
        self.fanout = fanout if fanout is not None else FanoutRouter()

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    async def _get_team(self, team_id: UUID, fresh: bool = False) -> Team:
        """
        Load a team with its members.

        fresh=True re-reads the row and the member list even if the session
        already holds them; membership writes always check against this.
        """
        stmt = select(Team).where(Team.id == team_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        team = result.scalar_one_or_none()
        if team is None:
            raise NotFoundError("Team not found", code="TEAM_NOT_FOUND")
        return team

    async def _get_project(self, project_id: UUID) -> Project:
        result = await self.db.execute(select(Project).where(Project.id == project_id))
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project not found", code="PROJECT_NOT_FOUND")
        return project

    async def _get_task(self, task_id: UUID) -> Task:
        result = await self.db.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError("Task not found", code="TASK_NOT_FOUND")
        return task

    async def _get_user(self, user_id: UUID) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    async def _load_users(self, user_ids: set[UUID]) -> dict[UUID, User]:
        if not user_ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return {u.id: u for u in result.scalars().all()}

    # -----------------------------------------------------------------------
    # Access checks
    # -----------------------------------------------------------------------

    @staticmethod
    def _require_member(team: Team, user: User) -> None:
        if not membership.is_member(team, user.id):
            raise ForbiddenError("You are not a member of this team", code="NOT_A_MEMBER")

    @staticmethod
    def _require_admin(team: Team, user: User) -> None:
        if not membership.is_admin(team, user.id):
            raise ForbiddenError("Only team admins can perform this action", code="NOT_ADMIN")

    async def _project_context(self, project_id: UUID, actor: User) -> tuple[Project, Team]:
        """Project plus its owning team, after checking the actor belongs to that team."""
        project = await self._get_project(project_id)
        team = await self._get_team(project.team_id)
        self._require_member(team, actor)
        return project, team

    async def _task_context(self, task_id: UUID, actor: User) -> tuple[Task, Project, Team]:
        task = await self._get_task(task_id)
        project, team = await self._project_context(task.project_id, actor)
        return task, project, team

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def _bump_team_version(self, team: Team) -> None:
        """
        Conditionally increment Team.version.

        Matches zero rows when another writer committed since the team was
        read; raises ConcurrentModificationError in that case.
        """
        read_version = team.version
        now = utcnow()
        result = await self.db.execute(
            update(Team)
            .where(Team.id == team.id, Team.version == read_version)
            .values(version=read_version + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info("Concurrent membership write on team_id=%s (version %d)", team.id, read_version)
            raise ConcurrentModificationError()
        set_committed_value(team, "version", read_version + 1)
        set_committed_value(team, "updated_at", now)

    async def _delete_project_tree(self, project_id: UUID) -> int:
        """
        Delete a project's activity, its tasks and the project row, children first.

        Returns the number of tasks removed.
        """
        task_ids = list(
            (await self.db.execute(select(Task.id).where(Task.project_id == project_id))).scalars().all()
        )
        await self.ledger.delete_for_project(project_id, task_ids)
        await self.db.execute(
            delete(Task).where(Task.project_id == project_id).execution_options(synchronize_session=False)
        )
        await self.db.execute(
            delete(Project).where(Project.id == project_id).execution_options(synchronize_session=False)
        )
        logger.debug("Deleted project_id=%s with %d tasks", project_id, len(task_ids))
        return len(task_ids)
