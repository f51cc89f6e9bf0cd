"""
Activity feed endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database import get_db
from taskhub.core.dependencies import get_current_user
from taskhub.models.user import User
from taskhub.schemas.activity import ActivityListResponse
from taskhub.services.activity_service import ActivityService

router = APIRouter()


def get_activity_service(db: AsyncSession = Depends(get_db)) -> ActivityService:
    return ActivityService(db=db)


@router.get("/activity/me", response_model=ActivityListResponse, summary="My recent activity")
async def my_activity(
    limit: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
) -> ActivityListResponse:
    return await service.my_activity(current_user, limit)


@router.get("/activity/range", response_model=ActivityListResponse, summary="My activity in a date range")
async def activity_in_range(
    start: datetime = Query(...),
    end: datetime = Query(...),
    team_id: UUID | None = Query(default=None),
    project_id: UUID | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
) -> ActivityListResponse:
    """Only the caller's own entries, even when a team or project is given."""
    return await service.activity_in_range(
        current_user, start, end, team_id=team_id, project_id=project_id, limit=limit
    )


@router.get("/teams/{team_id}/activity", response_model=ActivityListResponse, summary="Team activity")
async def team_activity(
    team_id: UUID,
    limit: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
) -> ActivityListResponse:
    return await service.team_activity(team_id, current_user, limit)


@router.get(
    "/projects/{project_id}/activity",
    response_model=ActivityListResponse,
    summary="Project activity",
)
async def project_activity(
    project_id: UUID,
    limit: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
) -> ActivityListResponse:
    return await service.project_activity(project_id, current_user, limit)


@router.get("/tasks/{task_id}/activity", response_model=ActivityListResponse, summary="Task history")
async def task_activity(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
) -> ActivityListResponse:
    return await service.task_activity(task_id, current_user)
