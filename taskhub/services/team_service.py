"""
Team business logic.

Handles team CRUD and the membership protocol. Every membership write
re-reads the team, checks the admin and creator invariants against that
fresh copy, and bumps Team.version conditionally so a concurrent writer
cannot slip a second change past the same checks.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from taskhub.core.errors import BadRequestError, ConflictError, ForbiddenError
from taskhub.models.activity_log import ActivityAction, ActivityLog
from taskhub.models.project import Project
from taskhub.models.task import Task
from taskhub.models.team import Team, TeamMember, TeamRole
from taskhub.models.user import User
from taskhub.schemas.team import (
    MemberAddRequest,
    MemberResponse,
    MembersListResponse,
    TeamCreateRequest,
    TeamListResponse,
    TeamResponse,
    TeamUpdateRequest,
)
from taskhub.services import membership
from taskhub.services.base import ServiceBase

logger = logging.getLogger(__name__)


class TeamService(ServiceBase):
    """Handles all team and membership operations."""

    # -----------------------------------------------------------------------
    # Create Team
    # -----------------------------------------------------------------------

    async def create_team(self, data: TeamCreateRequest, actor: User) -> TeamResponse:
        """
        Create a team. The creator becomes its first admin; any member_ids
        given are added as plain members.
        """
        extra_ids: list[UUID] = []
        for user_id in data.member_ids:
            if user_id != actor.id and user_id not in extra_ids:
                await self._get_user(user_id)
                extra_ids.append(user_id)

        team = Team(
            name=data.name,
            description=data.description,
            created_by=actor.id,
            version=1,
        )
        team.members = [TeamMember(user_id=actor.id, role=TeamRole.admin)]
        team.members.extend(TeamMember(user_id=uid, role=TeamRole.member) for uid in extra_ids)
        self.db.add(team)
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.team_created,
            actor.id,
            f"{actor.name} created team {team.name}",
            team_id=team.id,
            metadata={"member_count": len(team.members)},
        )
        await self.db.commit()
        logger.info("Team created: team_id=%s by user_id=%s", team.id, actor.id)

        await self.fanout.team_created(team, actor)
        return TeamResponse.model_validate(team)

    # -----------------------------------------------------------------------
    # Read
    # -----------------------------------------------------------------------

    async def list_my_teams(self, actor: User) -> TeamListResponse:
        result = await self.db.execute(
            select(Team)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == actor.id)
            .order_by(Team.created_at.desc())
        )
        teams = list(result.scalars().unique().all())
        return TeamListResponse(
            teams=[TeamResponse.model_validate(t) for t in teams],
            total=len(teams),
        )

    async def get_team(self, team_id: UUID, actor: User) -> TeamResponse:
        team = await self._get_team(team_id)
        self._require_member(team, actor)
        return TeamResponse.model_validate(team)

    async def list_members(self, team_id: UUID, actor: User) -> MembersListResponse:
        team = await self._get_team(team_id)
        self._require_member(team, actor)
        users = await self._load_users({m.user_id for m in team.members})
        members = [
            MemberResponse(
                user_id=m.user_id,
                name=users[m.user_id].name,
                email=users[m.user_id].email,
                role=m.role,
                joined_at=m.joined_at,
            )
            for m in team.members
            if m.user_id in users
        ]
        return MembersListResponse(members=members, total=len(members))

    # -----------------------------------------------------------------------
    # Update / Delete Team
    # -----------------------------------------------------------------------

    async def update_team(self, team_id: UUID, data: TeamUpdateRequest, actor: User) -> TeamResponse:
        """Update name/description. Team admins only."""
        team = await self._get_team(team_id)
        self._require_admin(team, actor)

        changes: dict[str, dict[str, str | None]] = {}
        if data.name is not None and data.name != team.name:
            changes["name"] = {"old": team.name, "new": data.name}
            team.name = data.name
        if "description" in data.model_fields_set and data.description != team.description:
            changes["description"] = {"old": team.description, "new": data.description}
            team.description = data.description

        if not changes:
            return TeamResponse.model_validate(team)

        await self.db.flush()
        await self.ledger.record(
            ActivityAction.team_updated,
            actor.id,
            f"{actor.name} updated team {team.name}",
            team_id=team.id,
            metadata={"changes": changes},
        )
        await self.db.commit()

        await self.fanout.team_updated(team, actor)
        return TeamResponse.model_validate(team)

    async def delete_team(self, team_id: UUID, actor: User) -> None:
        """
        Delete a team and everything it owns. Creator only.

        Projects (with their tasks and activity) go first, then the team's
        own activity, then the team and its member rows.
        """
        team = await self._get_team(team_id, fresh=True)
        if not membership.is_creator(team, actor.id):
            raise ForbiddenError("Only the team creator can delete the team", code="NOT_CREATOR")

        project_ids = list(
            (await self.db.execute(select(Project.id).where(Project.team_id == team.id))).scalars().all()
        )
        tasks_deleted = 0
        for project_id in project_ids:
            tasks_deleted += await self._delete_project_tree(project_id)
        await self.db.execute(
            delete(ActivityLog)
            .where(ActivityLog.team_id == team.id)
            .execution_options(synchronize_session=False)
        )

        name = team.name
        await self.db.delete(team)
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.team_deleted,
            actor.id,
            f"{actor.name} deleted team {name}",
            metadata={
                "team_id": str(team_id),
                "name": name,
                "projects_deleted": len(project_ids),
                "tasks_deleted": tasks_deleted,
            },
        )
        await self.db.commit()
        logger.info("Team deleted: team_id=%s by user_id=%s", team_id, actor.id)

        await self.fanout.team_deleted(team_id, name, actor)

    # -----------------------------------------------------------------------
    # Membership
    # -----------------------------------------------------------------------

    async def add_member(self, team_id: UUID, data: MemberAddRequest, actor: User) -> TeamResponse:
        team = await self._get_team(team_id, fresh=True)
        self._require_admin(team, actor)
        user = await self._get_user(data.user_id)
        if membership.is_member(team, user.id):
            raise ConflictError("User is already a member of this team", code="ALREADY_MEMBER")

        await self._bump_team_version(team)
        team.members.append(TeamMember(user_id=user.id, role=data.role))
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise ConflictError("User is already a member of this team", code="ALREADY_MEMBER") from exc

        await self.ledger.record(
            ActivityAction.member_added,
            actor.id,
            f"{actor.name} added {user.name} to {team.name}",
            team_id=team.id,
            metadata={"user_id": str(user.id), "role": data.role.value},
        )
        await self.db.commit()

        await self.fanout.member_added(team, user.id, data.role, actor)
        return TeamResponse.model_validate(team)

    async def remove_member(self, team_id: UUID, user_id: UUID, actor: User) -> TeamResponse:
        team = await self._get_team(team_id, fresh=True)
        self._require_admin(team, actor)
        if membership.is_creator(team, user_id):
            raise ForbiddenError("The team creator cannot be removed", code="CANNOT_REMOVE_CREATOR")
        member = membership.find_member(team, user_id)
        if member is None:
            raise BadRequestError("User is not a member of this team", code="NOT_A_MEMBER")
        if member.role == TeamRole.admin and membership.admin_count(team) <= 1:
            raise ConflictError("A team must keep at least one admin", code="LAST_ADMIN")

        await self._bump_team_version(team)
        team.members.remove(member)
        await self.db.flush()
        unassigned = await self._unassign_from_team_tasks(team.id, user_id)

        await self.ledger.record(
            ActivityAction.member_removed,
            actor.id,
            f"{actor.name} removed a member from {team.name}",
            team_id=team.id,
            metadata={"user_id": str(user_id), "role": member.role.value, "tasks_unassigned": unassigned},
        )
        await self.db.commit()

        await self.fanout.member_removed(team, user_id, actor)
        return TeamResponse.model_validate(team)

    async def change_member_role(
        self, team_id: UUID, user_id: UUID, role: TeamRole, actor: User
    ) -> TeamResponse:
        team = await self._get_team(team_id, fresh=True)
        self._require_admin(team, actor)
        if membership.is_creator(team, user_id):
            raise ForbiddenError("The team creator's role cannot be changed", code="CANNOT_CHANGE_CREATOR_ROLE")
        member = membership.find_member(team, user_id)
        if member is None:
            raise BadRequestError("User is not a member of this team", code="NOT_A_MEMBER")

        previous = member.role
        if previous == role:
            return TeamResponse.model_validate(team)
        if previous == TeamRole.admin and membership.admin_count(team) <= 1:
            raise ConflictError("A team must keep at least one admin", code="LAST_ADMIN")

        await self._bump_team_version(team)
        member.role = role
        await self.db.flush()

        await self.ledger.record(
            ActivityAction.member_role_changed,
            actor.id,
            f"{actor.name} changed a member's role in {team.name} to {role.value}",
            team_id=team.id,
            metadata={"user_id": str(user_id), "old_role": previous.value, "new_role": role.value},
        )
        await self.db.commit()

        await self.fanout.member_role_changed(team, user_id, role, previous, actor)
        return TeamResponse.model_validate(team)

    async def _unassign_from_team_tasks(self, team_id: UUID, user_id: UUID) -> int:
        """Clear assigned_to on the team's tasks held by user_id. Returns the count."""
        team_projects = select(Project.id).where(Project.team_id == team_id)
        result = await self.db.execute(
            update(Task)
            .where(Task.assigned_to == user_id, Task.project_id.in_(team_projects))
            .values(assigned_to=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
