"""
Room authorization for live connections.
"""

from uuid import UUID

import pytest

from taskhub.core.errors import BadRequestError, ForbiddenError, NotFoundError
from taskhub.schemas.events import RoomRequest
from taskhub.services.realtime_service import RealtimeService
from tests.helpers import create_project, create_task, create_team


async def test_member_may_join_every_room_kind(client, make_user, db):
    owner = await make_user()
    team = await create_team(client, owner)
    project = await create_project(client, owner, team["id"])
    task = await create_task(client, owner, project["id"])

    service = RealtimeService(db=db)
    assert await service.authorize_room(owner, "team", UUID(team["id"])) == f"team:{team['id']}"
    assert await service.authorize_room(owner, "project", UUID(project["id"])) == f"project:{project['id']}"
    assert await service.authorize_room(owner, "task", UUID(task["id"])) == f"task:{task['id']}"


async def test_outsider_is_refused(client, make_user, db):
    owner, outsider = await make_user(), await make_user()
    team = await create_team(client, owner)
    project = await create_project(client, owner, team["id"])

    service = RealtimeService(db=db)
    with pytest.raises(ForbiddenError):
        await service.authorize_room(outsider, "team", UUID(team["id"]))
    with pytest.raises(ForbiddenError):
        await service.authorize_room(outsider, "project", UUID(project["id"]))


async def test_unknown_entity_and_kind(make_user, db):
    user = await make_user()
    service = RealtimeService(db=db)
    request = RoomRequest.model_validate({"action": "join", "room": "team", "id": "00000000-0000-0000-0000-000000000001"})

    with pytest.raises(NotFoundError):
        await service.authorize_room(user, request.room, request.id)
    with pytest.raises(BadRequestError):
        await service.authorize_room(user, "organization", request.id)
