"""
Request helpers shared by the API tests.
"""

from __future__ import annotations

from typing import Any

import httpx

from taskhub.core.security import create_access_token
from taskhub.models.user import User

API = "/api/v1"
PASSWORD = "password123"


def auth(user: User) -> dict[str, str]:
    token = create_access_token(str(user.id), user.email, user.role.value)
    return {"Authorization": f"Bearer {token}"}


async def create_team(
    client: httpx.AsyncClient, owner: User, name: str = "Core Team", member_ids: list[Any] | None = None
) -> dict:
    resp = await client.post(
        f"{API}/teams",
        json={"name": name, "member_ids": [str(m) for m in (member_ids or [])]},
        headers=auth(owner),
    )
    assert resp.status_code == 201, f"Create team failed: {resp.text}"
    return resp.json()


async def add_member(client: httpx.AsyncClient, admin: User, team_id: str, user: User, role: str = "member") -> dict:
    resp = await client.post(
        f"{API}/teams/{team_id}/members",
        json={"user_id": str(user.id), "role": role},
        headers=auth(admin),
    )
    assert resp.status_code == 201, f"Add member failed: {resp.text}"
    return resp.json()


async def create_project(client: httpx.AsyncClient, user: User, team_id: str, name: str = "Launch") -> dict:
    resp = await client.post(
        f"{API}/teams/{team_id}/projects",
        json={"name": name},
        headers=auth(user),
    )
    assert resp.status_code == 201, f"Create project failed: {resp.text}"
    return resp.json()


async def create_task(client: httpx.AsyncClient, user: User, project_id: str, **fields: Any) -> dict:
    body = {"title": "Write docs", **fields}
    resp = await client.post(f"{API}/projects/{project_id}/tasks", json=body, headers=auth(user))
    assert resp.status_code == 201, f"Create task failed: {resp.text}"
    return resp.json()
