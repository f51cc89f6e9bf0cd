"""
Task endpoints.

CRUD, status transitions and assignment.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database import get_db
from taskhub.core.dependencies import get_current_user, get_fanout_router
from taskhub.models.task import TaskPriority, TaskStatus
from taskhub.models.user import User
from taskhub.schemas.task import (
    TaskAssignRequest,
    TaskCreateRequest,
    TaskListResponse,
    TaskResponse,
    TaskStatusUpdateRequest,
    TaskUpdateRequest,
)
from taskhub.services.fanout import FanoutRouter
from taskhub.services.task_service import TaskService

router = APIRouter()


def get_task_service(
    db: AsyncSession = Depends(get_db),
    fanout: FanoutRouter = Depends(get_fanout_router),
) -> TaskService:
    return TaskService(db=db, fanout=fanout)


# ---------------------------------------------------------------------------
# Project-scoped
# ---------------------------------------------------------------------------

@router.post(
    "/projects/{project_id}/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
async def create_task(
    project_id: UUID,
    data: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return await service.create_task(project_id, data, current_user)


@router.get("/projects/{project_id}/tasks", response_model=TaskListResponse, summary="List project tasks")
async def list_project_tasks(
    project_id: UUID,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    priority: TaskPriority | None = Query(default=None),
    assigned_to: UUID | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskListResponse:
    return await service.list_project_tasks(
        project_id,
        current_user,
        status=status_filter,
        priority=priority,
        assigned_to=assigned_to,
    )


# ---------------------------------------------------------------------------
# Task-scoped
# ---------------------------------------------------------------------------

@router.get("/tasks/me", response_model=TaskListResponse, summary="Tasks assigned to me")
async def list_my_tasks(
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskListResponse:
    return await service.list_my_tasks(current_user, status=status_filter)


@router.get("/tasks/{task_id}", response_model=TaskResponse, summary="Get task detail")
async def get_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return await service.get_task(task_id, current_user)


@router.patch("/tasks/{task_id}", response_model=TaskResponse, summary="Update task")
async def update_task(
    task_id: UUID,
    data: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return await service.update_task(task_id, data, current_user)


@router.patch("/tasks/{task_id}/status", response_model=TaskResponse, summary="Change task status")
async def change_status(
    task_id: UUID,
    data: TaskStatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return await service.change_status(task_id, data.status, current_user)


@router.patch("/tasks/{task_id}/assign", response_model=TaskResponse, summary="Assign task")
async def assign_task(
    task_id: UUID,
    data: TaskAssignRequest,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return await service.assign_task(task_id, data.assignee_id, current_user)


@router.patch("/tasks/{task_id}/unassign", response_model=TaskResponse, summary="Unassign task")
async def unassign_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return await service.unassign_task(task_id, current_user)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_200_OK, summary="Delete task")
async def delete_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> dict:
    await service.delete_task(task_id, current_user)
    return {}
