"""
Membership authority.

Pure role lookups over a team's current member list. Callers make sure the
team they pass in was freshly loaded; nothing here touches the database or
raises.
"""

from __future__ import annotations

from uuid import UUID

from taskhub.models.team import Team, TeamMember, TeamRole


def find_member(team: Team, user_id: UUID) -> TeamMember | None:
    for member in team.members:
        if member.user_id == user_id:
            return member
    return None


def role_of(team: Team, user_id: UUID) -> TeamRole | None:
    member = find_member(team, user_id)
    return member.role if member is not None else None


def is_member(team: Team, user_id: UUID) -> bool:
    return find_member(team, user_id) is not None


def is_admin(team: Team, user_id: UUID) -> bool:
    return role_of(team, user_id) == TeamRole.admin


def is_creator(team: Team, user_id: UUID) -> bool:
    return team.created_by == user_id


def admin_count(team: Team) -> int:
    return sum(1 for m in team.members if m.role == TeamRole.admin)
