"""
Team and membership tests.

Covers the admin/creator invariants, error codes, ledger entries and
fan-out for every membership write.
"""

from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select, update

from taskhub.core.errors import ConcurrentModificationError, ConflictError
from taskhub.models.activity_log import ActivityAction, ActivityLog
from taskhub.models.project import Project
from taskhub.models.task import Task
from taskhub.models.team import Team, TeamMember, TeamRole
from taskhub.services.team_service import TeamService
from tests.helpers import API, add_member, auth, create_project, create_task, create_team


async def _actions(session_factory, **filters) -> list[str]:
    async with session_factory() as session:
        stmt = select(ActivityLog.action).order_by(ActivityLog.created_at)
        for column, value in filters.items():
            stmt = stmt.where(getattr(ActivityLog, column) == value)
        return [a.value for a in (await session.execute(stmt)).scalars().all()]


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------

async def test_creator_becomes_sole_admin(client, make_user, transport, session_factory):
    owner = await make_user()
    team = await create_team(client, owner)

    assert team["member_count"] == 1
    assert team["members"][0]["user_id"] == str(owner.id)
    assert team["members"][0]["role"] == "admin"
    assert team["created_by"] == str(owner.id)
    assert transport.rooms_for("team:created") == [f"user:{owner.id}"]
    assert await _actions(session_factory, team_id=UUID(team["id"])) == ["team_created"]


async def test_initial_members_join_as_members(client, make_user):
    owner, u2, u3 = await make_user(), await make_user(), await make_user()
    team = await create_team(client, owner, member_ids=[u2.id, u3.id, owner.id, u2.id])

    roles = {m["user_id"]: m["role"] for m in team["members"]}
    assert roles == {str(owner.id): "admin", str(u2.id): "member", str(u3.id): "member"}


async def test_create_with_unknown_member_is_not_found(client, make_user):
    owner = await make_user()
    resp = await client.post(
        f"{API}/teams", json={"name": "Core", "member_ids": [str(uuid4())]}, headers=auth(owner)
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "USER_NOT_FOUND"


async def test_list_and_get_are_member_only(client, make_user):
    owner, outsider = await make_user(), await make_user()
    team = await create_team(client, owner)

    mine = await client.get(f"{API}/teams", headers=auth(owner))
    assert [t["id"] for t in mine.json()["teams"]] == [team["id"]]
    theirs = await client.get(f"{API}/teams", headers=auth(outsider))
    assert theirs.json()["total"] == 0

    resp = await client.get(f"{API}/teams/{team['id']}", headers=auth(outsider))
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "NOT_A_MEMBER"


async def test_list_members_includes_user_info(client, make_user):
    owner, u2 = await make_user("Owner"), await make_user("Second")
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], u2)

    resp = await client.get(f"{API}/teams/{team['id']}/members", headers=auth(u2))
    assert resp.status_code == 200
    names = [m["name"] for m in resp.json()["members"]]
    assert names == ["Owner", "Second"]


async def test_unknown_team_is_not_found(client, make_user):
    user = await make_user()
    resp = await client.get(f"{API}/teams/{uuid4()}", headers=auth(user))
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "TEAM_NOT_FOUND"


async def test_requests_without_token_are_rejected(client):
    resp = await client.get(f"{API}/teams")
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "MISSING_TOKEN"


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

async def test_update_requires_admin(client, make_user, transport):
    owner, member = await make_user(), await make_user()
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], member)

    resp = await client.patch(f"{API}/teams/{team['id']}", json={"name": "Renamed"}, headers=auth(member))
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "NOT_ADMIN"

    resp = await client.patch(f"{API}/teams/{team['id']}", json={"name": "Renamed"}, headers=auth(owner))
    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed"
    assert transport.rooms_for("team:updated") == [f"team:{team['id']}"]


# ---------------------------------------------------------------------------
# Membership protocol
# ---------------------------------------------------------------------------

async def test_add_member_emits_and_notifies(client, make_user, transport, session_factory):
    owner, u2 = await make_user(), await make_user()
    team = await create_team(client, owner)
    transport.clear()

    body = await add_member(client, owner, team["id"], u2, role="admin")
    assert body["member_count"] == 2
    assert transport.rooms_for("team:member:added") == [f"team:{team['id']}"]
    assert transport.rooms_for("notification") == [f"user:{u2.id}"]
    assert await _actions(session_factory, team_id=UUID(team["id"])) == ["team_created", "member_added"]


async def test_add_existing_member_conflicts(client, make_user):
    owner, u2 = await make_user(), await make_user()
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], u2)

    resp = await client.post(
        f"{API}/teams/{team['id']}/members", json={"user_id": str(u2.id)}, headers=auth(owner)
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "ALREADY_MEMBER"


async def test_add_unknown_user_is_not_found(client, make_user):
    owner = await make_user()
    team = await create_team(client, owner)
    resp = await client.post(
        f"{API}/teams/{team['id']}/members", json={"user_id": str(uuid4())}, headers=auth(owner)
    )
    assert resp.status_code == 404


async def test_member_cannot_add_members(client, make_user, session_factory):
    owner, member, u3 = await make_user(), await make_user(), await make_user()
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], member)

    resp = await client.post(
        f"{API}/teams/{team['id']}/members", json={"user_id": str(u3.id)}, headers=auth(member)
    )
    assert resp.status_code == 403
    assert await _actions(session_factory, team_id=UUID(team["id"])) == ["team_created", "member_added"]


async def test_second_admin_can_be_removed_but_creator_never(client, make_user, transport):
    creator, u2 = await make_user(), await make_user()
    team = await create_team(client, creator)
    await add_member(client, creator, team["id"], u2, role="admin")
    transport.clear()

    resp = await client.delete(f"{API}/teams/{team['id']}/members/{u2.id}", headers=auth(creator))
    assert resp.status_code == 200
    assert resp.json()["member_count"] == 1
    assert transport.rooms_for("team:member:removed") == [f"team:{team['id']}"]
    assert transport.rooms_for("notification") == [f"user:{u2.id}"]

    resp = await client.delete(f"{API}/teams/{team['id']}/members/{creator.id}", headers=auth(creator))
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "CANNOT_REMOVE_CREATOR"


async def test_creator_removal_forbidden_even_with_other_admins(client, make_user):
    creator, u2 = await make_user(), await make_user()
    team = await create_team(client, creator)
    await add_member(client, creator, team["id"], u2, role="admin")

    resp = await client.delete(f"{API}/teams/{team['id']}/members/{creator.id}", headers=auth(u2))
    assert resp.status_code == 403


async def test_remove_non_member_is_bad_request(client, make_user):
    owner, outsider = await make_user(), await make_user()
    team = await create_team(client, owner)
    resp = await client.delete(f"{API}/teams/{team['id']}/members/{outsider.id}", headers=auth(owner))
    assert resp.status_code == 400


async def test_removed_member_loses_team_assignments(client, make_user, session_factory):
    owner, member = await make_user(), await make_user()
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], member)
    project = await create_project(client, owner, team["id"])
    task = await create_task(client, owner, project["id"], assigned_to=str(member.id))

    other_team = await create_team(client, member, "Side Team")
    other_project = await create_project(client, member, other_team["id"])
    other_task = await create_task(client, member, other_project["id"], assigned_to=str(member.id))

    resp = await client.delete(f"{API}/teams/{team['id']}/members/{member.id}", headers=auth(owner))
    assert resp.status_code == 200

    assert (await client.get(f"{API}/tasks/{task['id']}", headers=auth(owner))).json()["assigned_to"] is None
    kept = await client.get(f"{API}/tasks/{other_task['id']}", headers=auth(member))
    assert kept.json()["assigned_to"] == str(member.id)

    async with session_factory() as session:
        entry = (
            await session.execute(
                select(ActivityLog).where(ActivityLog.action == ActivityAction.member_removed)
            )
        ).scalar_one()
    assert entry.meta["tasks_unassigned"] == 1


async def test_last_admin_cannot_be_demoted_or_removed(db, make_user):
    creator, admin2 = await make_user(), await make_user()
    # team whose only admin is not the creator, as left behind by older data
    team = Team(name="Legacy", created_by=creator.id, version=1)
    team.members = [
        TeamMember(user_id=creator.id, role=TeamRole.member),
        TeamMember(user_id=admin2.id, role=TeamRole.admin),
    ]
    db.add(team)
    await db.commit()

    service = TeamService(db)

    with pytest.raises(ConflictError) as exc_info:
        await service.change_member_role(team.id, admin2.id, TeamRole.member, admin2)
    assert exc_info.value.detail["code"] == "LAST_ADMIN"

    with pytest.raises(ConflictError) as exc_info:
        await service.remove_member(team.id, admin2.id, admin2)
    assert exc_info.value.detail["code"] == "LAST_ADMIN"


async def test_role_change(client, make_user, transport, session_factory):
    owner, u2 = await make_user(), await make_user()
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], u2)
    transport.clear()

    resp = await client.patch(
        f"{API}/teams/{team['id']}/members/{u2.id}", json={"role": "admin"}, headers=auth(owner)
    )
    assert resp.status_code == 200
    roles = {m["user_id"]: m["role"] for m in resp.json()["members"]}
    assert roles[str(u2.id)] == "admin"

    event = transport.events("team:member:role:changed")[0]
    assert event.data["role"] == "admin"
    assert event.data["previous_role"] == "member"
    assert transport.rooms_for("notification") == [f"user:{u2.id}"]
    assert (await _actions(session_factory, team_id=UUID(team["id"])))[-1] == "member_role_changed"


async def test_creator_role_cannot_change(client, make_user):
    owner, u2 = await make_user(), await make_user()
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], u2, role="admin")

    resp = await client.patch(
        f"{API}/teams/{team['id']}/members/{owner.id}", json={"role": "member"}, headers=auth(u2)
    )
    assert resp.status_code == 403


async def test_role_change_for_non_member_is_bad_request(client, make_user):
    owner, outsider = await make_user(), await make_user()
    team = await create_team(client, owner)
    resp = await client.patch(
        f"{API}/teams/{team['id']}/members/{outsider.id}", json={"role": "admin"}, headers=auth(owner)
    )
    assert resp.status_code == 400


async def test_concurrent_membership_write_is_detected(session_factory, make_user):
    owner, u2 = await make_user(), await make_user()
    async with session_factory() as setup:
        team = Team(name="Race", created_by=owner.id, version=1)
        team.members = [TeamMember(user_id=owner.id, role=TeamRole.admin)]
        setup.add(team)
        await setup.commit()
        team_id = team.id

    async with session_factory() as first:
        service = TeamService(first)
        stale = await service._get_team(team_id, fresh=True)

        # another writer commits in between
        async with session_factory() as second:
            await second.execute(update(Team).where(Team.id == team_id).values(version=Team.version + 1))
            await second.commit()

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await service._bump_team_version(stale)
        assert exc_info.value.status_code == 409
        assert exc_info.value.detail["retryable"] is True


async def test_membership_write_bumps_version(client, make_user, session_factory):
    owner, u2 = await make_user(), await make_user()
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], u2)

    async with session_factory() as session:
        version = (await session.execute(select(Team.version).where(Team.id == UUID(team["id"])))).scalar_one()
    assert version == 2


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

async def test_only_creator_can_delete(client, make_user):
    owner, u2 = await make_user(), await make_user()
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], u2, role="admin")

    resp = await client.delete(f"{API}/teams/{team['id']}", headers=auth(u2))
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "NOT_CREATOR"


async def test_delete_cascades_to_projects_tasks_and_activity(client, make_user, transport, session_factory):
    owner = await make_user()
    team = await create_team(client, owner)
    project = await create_project(client, owner, team["id"])
    await create_task(client, owner, project["id"])
    transport.clear()

    resp = await client.delete(f"{API}/teams/{team['id']}", headers=auth(owner))
    assert resp.status_code == 200
    assert transport.rooms_for("team:deleted") == [f"team:{team['id']}"]

    team_id, project_id = UUID(team["id"]), UUID(project["id"])
    async with session_factory() as session:
        assert (await session.execute(select(func.count()).select_from(Team))).scalar_one() == 0
        assert (await session.execute(select(func.count()).select_from(TeamMember))).scalar_one() == 0
        assert (await session.execute(select(func.count()).select_from(Project))).scalar_one() == 0
        assert (await session.execute(select(func.count()).select_from(Task))).scalar_one() == 0
        dangling = await session.execute(
            select(func.count()).select_from(ActivityLog).where(
                (ActivityLog.team_id == team_id) | (ActivityLog.project_id == project_id)
            )
        )
        assert dangling.scalar_one() == 0

    assert await _actions(session_factory, user_id=owner.id) == ["team_deleted"]
    assert (await client.get(f"{API}/teams/{team['id']}", headers=auth(owner))).status_code == 404
