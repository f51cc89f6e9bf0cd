"""
Team and membership endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database import get_db
from taskhub.core.dependencies import get_current_user, get_fanout_router
from taskhub.models.user import User
from taskhub.schemas.team import (
    MemberAddRequest,
    MemberRoleUpdateRequest,
    MembersListResponse,
    TeamCreateRequest,
    TeamListResponse,
    TeamResponse,
    TeamUpdateRequest,
)
from taskhub.services.fanout import FanoutRouter
from taskhub.services.team_service import TeamService

router = APIRouter()


def get_team_service(
    db: AsyncSession = Depends(get_db),
    fanout: FanoutRouter = Depends(get_fanout_router),
) -> TeamService:
    return TeamService(db=db, fanout=fanout)


@router.post(
    "/teams",
    response_model=TeamResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a team",
)
async def create_team(
    data: TeamCreateRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> TeamResponse:
    return await service.create_team(data, current_user)


@router.get("/teams", response_model=TeamListResponse, summary="List my teams")
async def list_my_teams(
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> TeamListResponse:
    return await service.list_my_teams(current_user)


@router.get("/teams/{team_id}", response_model=TeamResponse, summary="Get team detail")
async def get_team(
    team_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> TeamResponse:
    return await service.get_team(team_id, current_user)


@router.patch("/teams/{team_id}", response_model=TeamResponse, summary="Update team")
async def update_team(
    team_id: UUID,
    data: TeamUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> TeamResponse:
    return await service.update_team(team_id, data, current_user)


@router.delete("/teams/{team_id}", status_code=status.HTTP_200_OK, summary="Delete team")
async def delete_team(
    team_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> dict:
    """Creator only. Removes the team's projects, tasks and activity too."""
    await service.delete_team(team_id, current_user)
    return {}


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get("/teams/{team_id}/members", response_model=MembersListResponse, summary="List members")
async def list_members(
    team_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> MembersListResponse:
    return await service.list_members(team_id, current_user)


@router.post(
    "/teams/{team_id}/members",
    response_model=TeamResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member",
)
async def add_member(
    team_id: UUID,
    data: MemberAddRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> TeamResponse:
    return await service.add_member(team_id, data, current_user)


@router.delete("/teams/{team_id}/members/{user_id}", response_model=TeamResponse, summary="Remove a member")
async def remove_member(
    team_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> TeamResponse:
    return await service.remove_member(team_id, user_id, current_user)


@router.patch(
    "/teams/{team_id}/members/{user_id}",
    response_model=TeamResponse,
    summary="Change a member's role",
)
async def change_member_role(
    team_id: UUID,
    user_id: UUID,
    data: MemberRoleUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
) -> TeamResponse:
    return await service.change_member_role(team_id, user_id, data.role, current_user)
