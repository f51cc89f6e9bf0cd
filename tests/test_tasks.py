"""
Task tests: creation defaults, lifecycle through both update paths,
assignment rules, deletion and derived fields.
"""

from datetime import timedelta
from uuid import UUID, uuid4

from sqlalchemy import select

from taskhub.models.activity_log import ActivityLog
from taskhub.models.base import utcnow
from tests.helpers import API, add_member, auth, create_project, create_task, create_team


async def _setup(client, make_user):
    owner, member = await make_user("Owner"), await make_user("Member")
    team = await create_team(client, owner)
    await add_member(client, owner, team["id"], member)
    project = await create_project(client, owner, team["id"])
    return owner, member, team, project


async def _task_actions(session_factory, task_id) -> list[tuple[str, dict]]:
    async with session_factory() as session:
        rows = await session.execute(
            select(ActivityLog).where(ActivityLog.task_id == UUID(task_id)).order_by(ActivityLog.created_at)
        )
        return [(r.action.value, r.meta) for r in rows.scalars().all()]


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

async def test_defaults_when_status_and_priority_omitted(client, make_user, transport):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])

    assert task["status"] == "To Do"
    assert task["priority"] == "Medium"
    assert task["tags"] == []
    assert task["is_overdue"] is False
    assert task["days_until_due"] is None
    assert transport.rooms_for("task:created") == [f"project:{project['id']}"]


async def test_create_with_member_assignee_notifies(client, make_user, transport):
    owner, member, _, project = await _setup(client, make_user)
    transport.clear()
    task = await create_task(client, owner, project["id"], assigned_to=str(member.id))

    assert task["assigned_to"] == str(member.id)
    assert task["assignee"]["name"] == "Member"
    assert transport.rooms_for("notification") == [f"user:{member.id}"]


async def test_create_with_outsider_assignee_is_rejected(client, make_user):
    owner, _, _, project = await _setup(client, make_user)
    outsider = await make_user()
    resp = await client.post(
        f"{API}/projects/{project['id']}/tasks",
        json={"title": "Nope", "assigned_to": str(outsider.id)},
        headers=auth(owner),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "ASSIGNEE_NOT_MEMBER"

    listing = await client.get(f"{API}/projects/{project['id']}/tasks", headers=auth(owner))
    assert listing.json()["total"] == 0


async def test_too_many_tags_rejected(client, make_user):
    owner, _, _, project = await _setup(client, make_user)
    resp = await client.post(
        f"{API}/projects/{project['id']}/tasks",
        json={"title": "Tagged", "tags": [f"t{i}" for i in range(11)]},
        headers=auth(owner),
    )
    assert resp.status_code == 422


async def test_outsider_cannot_touch_tasks(client, make_user):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])
    outsider = await make_user()

    assert (await client.get(f"{API}/tasks/{task['id']}", headers=auth(outsider))).status_code == 403
    resp = await client.patch(
        f"{API}/tasks/{task['id']}/status", json={"status": "In Progress"}, headers=auth(outsider)
    )
    assert resp.status_code == 403
    resp = await client.post(f"{API}/projects/{project['id']}/tasks", json={"title": "Sneaky"}, headers=auth(outsider))
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

async def test_skipping_a_step_is_rejected(client, make_user, session_factory, transport):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])
    transport.clear()

    resp = await client.patch(f"{API}/tasks/{task['id']}/status", json={"status": "Review"}, headers=auth(owner))
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["code"] == "INVALID_TRANSITION"
    assert detail["from"] == "To Do"
    assert detail["to"] == "Review"

    current = await client.get(f"{API}/tasks/{task['id']}", headers=auth(owner))
    assert current.json()["status"] == "To Do"
    assert [a for a, _ in await _task_actions(session_factory, task["id"])] == ["task_created"]
    assert transport.emitted == []


async def test_full_lifecycle_and_reopen(client, make_user, session_factory, transport):
    owner, member, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"], assigned_to=str(member.id))
    transport.clear()

    for status in ("In Progress", "Review", "Done", "In Progress"):
        resp = await client.patch(f"{API}/tasks/{task['id']}/status", json={"status": status}, headers=auth(owner))
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == status

    changes = [m for a, m in await _task_actions(session_factory, task["id"]) if a == "task_status_changed"]
    assert changes[0] == {"old_status": "To Do", "new_status": "In Progress"}
    assert changes[-1] == {"old_status": "Done", "new_status": "In Progress"}
    assert len(transport.rooms_for("task:status:changed")) == 8
    assert transport.rooms_for("notification") == [f"user:{member.id}"] * 4


async def test_update_with_status_writes_two_entries(client, make_user, session_factory, transport):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])
    transport.clear()

    resp = await client.patch(
        f"{API}/tasks/{task['id']}",
        json={"title": "Write better docs", "status": "In Progress"},
        headers=auth(owner),
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Write better docs"
    assert resp.json()["status"] == "In Progress"

    actions = await _task_actions(session_factory, task["id"])
    assert [a for a, _ in actions] == ["task_created", "task_updated", "task_status_changed"]
    assert actions[-1][1] == {"old_status": "To Do", "new_status": "In Progress"}
    assert transport.rooms_for("task:updated") == [f"project:{project['id']}", f"task:{task['id']}"]
    assert len(transport.events("task:status:changed")) == 2


async def test_update_with_illegal_status_changes_nothing(client, make_user, session_factory):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])

    resp = await client.patch(
        f"{API}/tasks/{task['id']}", json={"title": "Renamed", "status": "Done"}, headers=auth(owner)
    )
    assert resp.status_code == 422

    current = (await client.get(f"{API}/tasks/{task['id']}", headers=auth(owner))).json()
    assert current["title"] == "Write docs"
    assert current["status"] == "To Do"
    assert [a for a, _ in await _task_actions(session_factory, task["id"])] == ["task_created"]


async def test_update_without_status_writes_one_entry(client, make_user, session_factory):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])

    resp = await client.patch(
        f"{API}/tasks/{task['id']}", json={"priority": "Urgent", "status": "To Do"}, headers=auth(owner)
    )
    assert resp.status_code == 200
    assert resp.json()["priority"] == "Urgent"
    actions = await _task_actions(session_factory, task["id"])
    assert [a for a, _ in actions] == ["task_created", "task_updated"]
    assert actions[-1][1]["changes"]["priority"] == {"old": "Medium", "new": "Urgent"}


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------

async def test_assign_outsider_leaves_task_unassigned(client, make_user, session_factory):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])
    outsider = await make_user()

    resp = await client.patch(
        f"{API}/tasks/{task['id']}/assign", json={"assignee_id": str(outsider.id)}, headers=auth(owner)
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "ASSIGNEE_NOT_MEMBER"

    current = (await client.get(f"{API}/tasks/{task['id']}", headers=auth(owner))).json()
    assert current["assigned_to"] is None
    assert [a for a, _ in await _task_actions(session_factory, task["id"])] == ["task_created"]


async def test_assign_unknown_user_is_not_found(client, make_user):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])
    resp = await client.patch(
        f"{API}/tasks/{task['id']}/assign", json={"assignee_id": str(uuid4())}, headers=auth(owner)
    )
    assert resp.status_code == 404


async def test_assign_then_unassign(client, make_user, transport):
    owner, member, _, project = await _setup(client, make_user)
    task = await create_task(client, owner, project["id"])
    transport.clear()

    resp = await client.patch(
        f"{API}/tasks/{task['id']}/assign", json={"assignee_id": str(member.id)}, headers=auth(owner)
    )
    assert resp.status_code == 200
    assert resp.json()["assigned_to"] == str(member.id)
    assert transport.rooms_for("task:assigned") == [f"project:{project['id']}", f"task:{task['id']}"]
    assert transport.rooms_for("notification") == [f"user:{member.id}"]

    transport.clear()
    resp = await client.patch(f"{API}/tasks/{task['id']}/unassign", headers=auth(owner))
    assert resp.status_code == 200
    assert resp.json()["assigned_to"] is None
    assert transport.events("task:unassigned")[0].data["previous_assignee_id"] == str(member.id)
    assert transport.rooms_for("notification") == [f"user:{member.id}"]

    resp = await client.patch(f"{API}/tasks/{task['id']}/unassign", headers=auth(owner))
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "NOT_ASSIGNED"


async def test_my_tasks_sorted_by_due_date(client, make_user):
    owner, member, _, project = await _setup(client, make_user)
    now = utcnow()
    later = await create_task(
        client, owner, project["id"], title="Later", assigned_to=str(member.id),
        due_date=(now + timedelta(days=5)).isoformat(),
    )
    undated = await create_task(client, owner, project["id"], title="Someday", assigned_to=str(member.id))
    soon = await create_task(
        client, owner, project["id"], title="Soon", assigned_to=str(member.id),
        due_date=(now + timedelta(days=1)).isoformat(),
    )
    await create_task(client, owner, project["id"], title="Not mine")

    resp = await client.get(f"{API}/tasks/me", headers=auth(member))
    assert [t["id"] for t in resp.json()["tasks"]] == [soon["id"], later["id"], undated["id"]]


async def test_filters_on_project_listing(client, make_user):
    owner, member, _, project = await _setup(client, make_user)
    await create_task(client, owner, project["id"], priority="High")
    mine = await create_task(client, owner, project["id"], assigned_to=str(member.id))

    resp = await client.get(f"{API}/projects/{project['id']}/tasks", params={"priority": "High"}, headers=auth(owner))
    assert resp.json()["total"] == 1
    resp = await client.get(
        f"{API}/projects/{project['id']}/tasks", params={"assigned_to": str(member.id)}, headers=auth(owner)
    )
    assert [t["id"] for t in resp.json()["tasks"]] == [mine["id"]]


async def test_overdue_task(client, make_user):
    owner, _, _, project = await _setup(client, make_user)
    task = await create_task(
        client, owner, project["id"], due_date=(utcnow() - timedelta(days=2, hours=1)).isoformat()
    )
    assert task["is_overdue"] is True
    assert task["days_until_due"] == -2


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

async def test_delete_by_creator_or_admin_only(client, make_user, session_factory, transport):
    owner, member, team, project = await _setup(client, make_user)
    other = await make_user()
    await add_member(client, owner, team["id"], other)
    task = await create_task(client, member, project["id"])

    resp = await client.delete(f"{API}/tasks/{task['id']}", headers=auth(other))
    assert resp.status_code == 403

    transport.clear()
    resp = await client.delete(f"{API}/tasks/{task['id']}", headers=auth(owner))
    assert resp.status_code == 200
    assert transport.rooms_for("task:deleted") == [f"project:{project['id']}", f"task:{task['id']}"]
    assert await _task_actions(session_factory, task["id"]) == []
    assert (await client.get(f"{API}/tasks/{task['id']}", headers=auth(owner))).status_code == 404
