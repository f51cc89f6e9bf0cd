"""
Task business logic.

Handles task CRUD, status changes and assignment. Status only ever moves
through lifecycle.apply_transition; assignees must belong to the task's team.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select

from taskhub.core.errors import BadRequestError, ForbiddenError
from taskhub.models.activity_log import ActivityAction
from taskhub.models.task import Task, TaskPriority, TaskStatus
from taskhub.models.team import Team
from taskhub.models.user import User
from taskhub.schemas.common import UserSummaryResponse
from taskhub.schemas.task import (
    TaskCreateRequest,
    TaskListResponse,
    TaskResponse,
    TaskUpdateRequest,
)
from taskhub.services import lifecycle, membership
from taskhub.services.base import ServiceBase, jsonable

logger = logging.getLogger(__name__)


class TaskService(ServiceBase):
    """Handles all task operations."""

    # -----------------------------------------------------------------------
    # Create Task
    # -----------------------------------------------------------------------

    async def create_task(self, project_id: UUID, data: TaskCreateRequest, actor: User) -> TaskResponse:
        project, team = await self._project_context(project_id, actor)
        if data.assigned_to is not None:
            await self._verify_assignee(team, data.assigned_to)

        task = Task(
            project_id=project.id,
            title=data.title,
            description=data.description,
            assigned_to=data.assigned_to,
            created_by=actor.id,
            status=data.status or TaskStatus.todo,
            priority=data.priority or TaskPriority.medium,
            due_date=data.due_date,
            tags=data.tags,
        )
        self.db.add(task)
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.task_created,
            actor.id,
            f"{actor.name} created task {task.title}",
            team_id=team.id,
            project_id=project.id,
            task_id=task.id,
            metadata={"assigned_to": str(task.assigned_to) if task.assigned_to else None},
        )
        await self.db.commit()
        logger.info("Task created: task_id=%s project_id=%s", task.id, project.id)

        await self.fanout.task_created(task, team.id, actor)
        return await self._to_response(task)

    # -----------------------------------------------------------------------
    # Read
    # -----------------------------------------------------------------------

    async def list_project_tasks(
        self,
        project_id: UUID,
        actor: User,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        assigned_to: UUID | None = None,
    ) -> TaskListResponse:
        """List tasks in a project with optional filters, newest first."""
        project, _ = await self._project_context(project_id, actor)

        stmt = select(Task).where(Task.project_id == project.id)
        if status is not None:
            stmt = stmt.where(Task.status == status)
        if priority is not None:
            stmt = stmt.where(Task.priority == priority)
        if assigned_to is not None:
            stmt = stmt.where(Task.assigned_to == assigned_to)

        result = await self.db.execute(stmt.order_by(Task.created_at.desc()))
        tasks = list(result.scalars().all())
        return TaskListResponse(tasks=await self._to_responses(tasks), total=len(tasks))

    async def list_my_tasks(self, actor: User, status: TaskStatus | None = None) -> TaskListResponse:
        """Tasks assigned to the actor, soonest due date first, undated last."""
        stmt = select(Task).where(Task.assigned_to == actor.id)
        if status is not None:
            stmt = stmt.where(Task.status == status)
        result = await self.db.execute(
            stmt.order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.created_at.desc())
        )
        tasks = list(result.scalars().all())
        return TaskListResponse(tasks=await self._to_responses(tasks), total=len(tasks))

    async def get_task(self, task_id: UUID, actor: User) -> TaskResponse:
        task, _, _ = await self._task_context(task_id, actor)
        return await self._to_response(task)

    # -----------------------------------------------------------------------
    # Update Task
    # -----------------------------------------------------------------------

    async def update_task(self, task_id: UUID, data: TaskUpdateRequest, actor: User) -> TaskResponse:
        """
        Partially update a task.

        A status different from the current one goes through the lifecycle
        check before anything else is touched, and adds a second ledger entry.
        """
        task, project, team = await self._task_context(task_id, actor)

        old_status = task.status
        status_changed = data.status is not None and data.status != old_status
        if status_changed:
            lifecycle.apply_transition(task, data.status)

        changes: dict[str, dict[str, Any]] = {}
        fields = data.model_dump(exclude_unset=True, exclude={"status"})
        for field in ("title", "priority", "tags"):
            if fields.get(field) is None:
                fields.pop(field, None)
        for field, value in fields.items():
            current = getattr(task, field)
            if current != value:
                changes[field] = {"old": jsonable(current), "new": jsonable(value)}
                setattr(task, field, value)
        if status_changed:
            changes["status"] = {"old": old_status.value, "new": task.status.value}

        if not changes:
            return await self._to_response(task)

        await self.db.flush()
        await self.ledger.record(
            ActivityAction.task_updated,
            actor.id,
            f"{actor.name} updated task {task.title}",
            team_id=team.id,
            project_id=project.id,
            task_id=task.id,
            metadata={"changes": changes},
        )
        if status_changed:
            await self.ledger.record(
                ActivityAction.task_status_changed,
                actor.id,
                f"{actor.name} moved {task.title} from {old_status.value} to {task.status.value}",
                team_id=team.id,
                project_id=project.id,
                task_id=task.id,
                metadata={"old_status": old_status.value, "new_status": task.status.value},
            )
        await self.db.commit()

        await self.fanout.task_updated(task, team.id, actor)
        if status_changed:
            await self.fanout.task_status_changed(task, team.id, old_status, task.status, actor)
        return await self._to_response(task)

    async def change_status(self, task_id: UUID, new_status: TaskStatus, actor: User) -> TaskResponse:
        task, project, team = await self._task_context(task_id, actor)

        old_status = lifecycle.apply_transition(task, new_status)
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.task_status_changed,
            actor.id,
            f"{actor.name} moved {task.title} from {old_status.value} to {task.status.value}",
            team_id=team.id,
            project_id=project.id,
            task_id=task.id,
            metadata={"old_status": old_status.value, "new_status": task.status.value},
        )
        await self.db.commit()

        await self.fanout.task_status_changed(task, team.id, old_status, task.status, actor)
        return await self._to_response(task)

    # -----------------------------------------------------------------------
    # Assignment
    # -----------------------------------------------------------------------

    async def assign_task(self, task_id: UUID, assignee_id: UUID, actor: User) -> TaskResponse:
        task, project, team = await self._task_context(task_id, actor)
        assignee = await self._verify_assignee(team, assignee_id)

        previous = task.assigned_to
        task.assigned_to = assignee.id
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.task_assigned,
            actor.id,
            f"{actor.name} assigned {task.title} to {assignee.name}",
            team_id=team.id,
            project_id=project.id,
            task_id=task.id,
            metadata={
                "assignee_id": str(assignee.id),
                "previous_assignee_id": str(previous) if previous else None,
            },
        )
        await self.db.commit()

        await self.fanout.task_assigned(task, team.id, assignee.id, previous, actor)
        return await self._to_response(task)

    async def unassign_task(self, task_id: UUID, actor: User) -> TaskResponse:
        task, project, team = await self._task_context(task_id, actor)
        if task.assigned_to is None:
            raise BadRequestError("Task is not assigned to anyone", code="NOT_ASSIGNED")

        previous = task.assigned_to
        task.assigned_to = None
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.task_unassigned,
            actor.id,
            f"{actor.name} unassigned {task.title}",
            team_id=team.id,
            project_id=project.id,
            task_id=task.id,
            metadata={"previous_assignee_id": str(previous)},
        )
        await self.db.commit()

        await self.fanout.task_unassigned(task, team.id, previous, actor)
        return await self._to_response(task)

    # -----------------------------------------------------------------------
    # Delete Task
    # -----------------------------------------------------------------------

    async def delete_task(self, task_id: UUID, actor: User) -> None:
        """Delete a task and its activity. Team admins or the task creator only."""
        task, project, team = await self._task_context(task_id, actor)
        if not (membership.is_admin(team, actor.id) or task.created_by == actor.id):
            raise ForbiddenError(
                "Only team admins or the task creator can delete this task",
                code="NOT_ALLOWED",
            )

        title = task.title
        await self.ledger.delete_for_task(task.id)
        await self.db.delete(task)
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.task_deleted,
            actor.id,
            f"{actor.name} deleted task {title}",
            team_id=team.id,
            project_id=project.id,
            metadata={"task_id": str(task_id), "title": title},
        )
        await self.db.commit()

        await self.fanout.task_deleted(task_id, project.id, team.id, title, actor)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _verify_assignee(self, team: Team, user_id: UUID) -> User:
        """Assignee must exist (404) and belong to the team (400)."""
        user = await self._get_user(user_id)
        if not membership.is_member(team, user.id):
            raise BadRequestError(
                "Assignee must be a member of the project's team",
                code="ASSIGNEE_NOT_MEMBER",
            )
        return user

    async def _to_response(self, task: Task) -> TaskResponse:
        return (await self._to_responses([task]))[0]

    async def _to_responses(self, tasks: list[Task]) -> list[TaskResponse]:
        users = await self._load_users({t.assigned_to for t in tasks if t.assigned_to is not None})
        responses = []
        for t in tasks:
            response = TaskResponse.model_validate(t)
            assignee = users.get(t.assigned_to) if t.assigned_to else None
            if assignee is not None:
                response.assignee = UserSummaryResponse.model_validate(assignee)
            responses.append(response)
        return responses
