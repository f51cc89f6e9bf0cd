"""
Team schemas.

Request/response models for team and membership endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from taskhub.models.team import TeamRole


class TeamCreateRequest(BaseModel):
    """Request body for POST /teams."""

    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    member_ids: list[UUID] = Field(
        default_factory=list,
        description="Users added as plain members; the creator is always the first admin",
    )


class TeamUpdateRequest(BaseModel):
    """Request body for PATCH /teams/{team_id}."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class MemberAddRequest(BaseModel):
    """Request body for POST /teams/{team_id}/members."""

    user_id: UUID
    role: TeamRole = TeamRole.member


class MemberRoleUpdateRequest(BaseModel):
    """Request body for PATCH /teams/{team_id}/members/{user_id}."""

    role: TeamRole


class TeamMemberResponse(BaseModel):
    user_id: UUID
    role: TeamRole
    joined_at: datetime

    model_config = {"from_attributes": True}


class TeamResponse(BaseModel):
    """Team detail with its member list."""

    id: UUID
    name: str
    description: str | None
    created_by: UUID
    members: list[TeamMemberResponse]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def member_count(self) -> int:
        return len(self.members)


class TeamListResponse(BaseModel):
    teams: list[TeamResponse]
    total: int


class MemberResponse(BaseModel):
    """Single team member with user info and role."""

    user_id: UUID
    name: str
    email: str
    role: TeamRole
    joined_at: datetime


class MembersListResponse(BaseModel):
    """Response for GET /teams/{team_id}/members."""

    members: list[MemberResponse]
    total: int
