"""
Project management endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database import get_db
from taskhub.core.dependencies import get_current_user, get_fanout_router
from taskhub.models.project import ProjectStatus
from taskhub.models.user import User
from taskhub.schemas.project import (
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectStatsResponse,
    ProjectUpdateRequest,
)
from taskhub.services.fanout import FanoutRouter
from taskhub.services.project_service import ProjectService

router = APIRouter()


def get_project_service(
    db: AsyncSession = Depends(get_db),
    fanout: FanoutRouter = Depends(get_fanout_router),
) -> ProjectService:
    return ProjectService(db=db, fanout=fanout)


@router.post(
    "/teams/{team_id}/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project in a team",
)
async def create_project(
    team_id: UUID,
    data: ProjectCreateRequest,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return await service.create_project(team_id, data, current_user)


@router.get(
    "/teams/{team_id}/projects",
    response_model=ProjectListResponse,
    summary="List a team's projects",
)
async def list_team_projects(
    team_id: UUID,
    status_filter: ProjectStatus | None = Query(default=None, alias="status"),
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ProjectListResponse:
    return await service.list_team_projects(team_id, current_user, status=status_filter)


@router.get("/projects", response_model=ProjectListResponse, summary="List projects in all my teams")
async def list_my_projects(
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ProjectListResponse:
    return await service.list_my_projects(current_user)


@router.get("/projects/{project_id}", response_model=ProjectResponse, summary="Get project detail")
async def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return await service.get_project(project_id, current_user)


@router.get(
    "/projects/{project_id}/stats",
    response_model=ProjectStatsResponse,
    summary="Task counts and completion rate",
)
async def get_project_stats(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ProjectStatsResponse:
    return await service.get_stats(project_id, current_user)


@router.patch("/projects/{project_id}", response_model=ProjectResponse, summary="Update project")
async def update_project(
    project_id: UUID,
    data: ProjectUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return await service.update_project(project_id, data, current_user)


@router.delete("/projects/{project_id}", status_code=status.HTTP_200_OK, summary="Delete project")
async def delete_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> dict:
    """Team admins or the project creator. Deletes its tasks and activity too."""
    await service.delete_project(project_id, current_user)
    return {}
