"""
Project business logic.

Handles project CRUD, listings and task statistics.
Access to a project is membership (any role) of its owning team.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select

from taskhub.core.errors import BadRequestError, ForbiddenError
from taskhub.models.activity_log import ActivityAction
from taskhub.models.project import Project, ProjectStatus, dates_in_order
from taskhub.models.task import Task, TaskStatus
from taskhub.models.team import TeamMember
from taskhub.models.user import User
from taskhub.schemas.project import (
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectStatsResponse,
    ProjectUpdateRequest,
    TaskCountsResponse,
)
from taskhub.services import membership
from taskhub.services.base import ServiceBase, jsonable

logger = logging.getLogger(__name__)


class ProjectService(ServiceBase):
    """Handles all project operations."""

    # -----------------------------------------------------------------------
    # Create Project
    # -----------------------------------------------------------------------

    async def create_project(
        self, team_id: UUID, data: ProjectCreateRequest, actor: User
    ) -> ProjectResponse:
        team = await self._get_team(team_id)
        self._require_member(team, actor)

        project = Project(
            team_id=team.id,
            name=data.name,
            description=data.description,
            status=data.status,
            created_by=actor.id,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        self.db.add(project)
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.project_created,
            actor.id,
            f"{actor.name} created project {project.name}",
            team_id=team.id,
            project_id=project.id,
            metadata={"name": project.name},
        )
        await self.db.commit()
        logger.info("Project created: project_id=%s team_id=%s", project.id, team.id)

        await self.fanout.project_created(project, actor)
        return ProjectResponse.model_validate(project)

    # -----------------------------------------------------------------------
    # Read
    # -----------------------------------------------------------------------

    async def list_team_projects(
        self, team_id: UUID, actor: User, status: ProjectStatus | None = None
    ) -> ProjectListResponse:
        team = await self._get_team(team_id)
        self._require_member(team, actor)

        stmt = select(Project).where(Project.team_id == team.id)
        if status is not None:
            stmt = stmt.where(Project.status == status)
        result = await self.db.execute(stmt.order_by(Project.created_at.desc()))
        projects = list(result.scalars().all())
        return ProjectListResponse(
            projects=[ProjectResponse.model_validate(p) for p in projects],
            total=len(projects),
        )

    async def list_my_projects(self, actor: User) -> ProjectListResponse:
        """Projects across every team the actor belongs to."""
        team_ids = select(TeamMember.team_id).where(TeamMember.user_id == actor.id)
        result = await self.db.execute(
            select(Project)
            .where(Project.team_id.in_(team_ids))
            .order_by(Project.created_at.desc())
        )
        projects = list(result.scalars().all())
        return ProjectListResponse(
            projects=[ProjectResponse.model_validate(p) for p in projects],
            total=len(projects),
        )

    async def get_project(self, project_id: UUID, actor: User) -> ProjectResponse:
        project, _ = await self._project_context(project_id, actor)
        return ProjectResponse.model_validate(project)

    async def get_stats(self, project_id: UUID, actor: User) -> ProjectStatsResponse:
        """Task counts per status and completion rate."""
        project, _ = await self._project_context(project_id, actor)

        result = await self.db.execute(
            select(Task.status, func.count(Task.id))
            .where(Task.project_id == project.id)
            .group_by(Task.status)
        )
        counts = {TaskStatus(s): n for s, n in result.all()}
        total = sum(counts.values())
        done = counts.get(TaskStatus.done, 0)

        return ProjectStatsResponse(
            project_id=project.id,
            name=project.name,
            status=project.status.value,
            tasks=TaskCountsResponse(
                total=total,
                todo=counts.get(TaskStatus.todo, 0),
                in_progress=counts.get(TaskStatus.in_progress, 0),
                review=counts.get(TaskStatus.review, 0),
                completed=done,
                completion_rate=round(done * 100 / total) if total else 0,
            ),
        )

    # -----------------------------------------------------------------------
    # Update Project
    # -----------------------------------------------------------------------

    async def update_project(
        self, project_id: UUID, data: ProjectUpdateRequest, actor: User
    ) -> ProjectResponse:
        project, _ = await self._project_context(project_id, actor)

        fields = data.model_dump(exclude_unset=True)
        if fields.get("name") is None:
            fields.pop("name", None)
        if fields.get("status") is None:
            fields.pop("status", None)

        start = fields.get("start_date", project.start_date)
        end = fields.get("end_date", project.end_date)
        if not dates_in_order(start, end):
            raise BadRequestError("End date must be on or after start date", code="INVALID_DATE_RANGE")

        changes: dict[str, dict[str, Any]] = {}
        for field, value in fields.items():
            current = getattr(project, field)
            if current != value:
                changes[field] = {"old": jsonable(current), "new": jsonable(value)}
                setattr(project, field, value)

        if not changes:
            return ProjectResponse.model_validate(project)

        await self.db.flush()
        await self.ledger.record(
            ActivityAction.project_updated,
            actor.id,
            f"{actor.name} updated project {project.name}",
            team_id=project.team_id,
            project_id=project.id,
            metadata={"changes": changes},
        )
        await self.db.commit()

        await self.fanout.project_updated(project, actor)
        return ProjectResponse.model_validate(project)

    # -----------------------------------------------------------------------
    # Delete Project
    # -----------------------------------------------------------------------

    async def delete_project(self, project_id: UUID, actor: User) -> None:
        """
        Delete a project with its tasks and all activity about either.
        Team admins or the project creator only.
        """
        project, team = await self._project_context(project_id, actor)
        if not (membership.is_admin(team, actor.id) or project.created_by == actor.id):
            raise ForbiddenError(
                "Only team admins or the project creator can delete this project",
                code="NOT_ALLOWED",
            )

        name = project.name
        tasks_deleted = await self._delete_project_tree(project.id)

        await self.ledger.record(
            ActivityAction.project_deleted,
            actor.id,
            f"{actor.name} deleted project {name}",
            team_id=team.id,
            metadata={"project_id": str(project_id), "name": name, "tasks_deleted": tasks_deleted},
        )
        await self.db.commit()
        logger.info("Project deleted: project_id=%s (%d tasks)", project_id, tasks_deleted)

        await self.fanout.project_deleted(project_id, team.id, name, actor)
