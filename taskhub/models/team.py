"""
Team and TeamMember ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.models.base import Base, TimestampMixin, UUIDMixin, enum_type, utcnow


class TeamRole(str, enum.Enum):
    """Role a user holds inside one team."""

    admin = "admin"
    member = "member"


class TeamMember(Base, UUIDMixin):
    """One entry of a team's ordered member list."""

    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    team_id: Mapped[UUID] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[TeamRole] = mapped_column(
        enum_type(TeamRole, "team_role"), nullable=False, default=TeamRole.member
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<TeamMember team_id={self.team_id} user_id={self.user_id} role={self.role}>"


class Team(Base, UUIDMixin, TimestampMixin):
    """A group of users that owns projects."""

    __tablename__ = "teams"

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_by: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Bumped by every membership write; guards the admin invariant against
    # concurrent writers.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    members: Mapped[list[TeamMember]] = relationship(
        "TeamMember",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TeamMember.joined_at",
    )

    def __repr__(self) -> str:
        return f"<Team id={self.id} name={self.name!r}>"
