"""
WebSocket endpoint.

Connect: WS /api/v1/ws?token={access_token}
Then send {"action": "join" | "leave", "room": "team" | "project" | "task", "id": ...}
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskhub.core.database import get_session_factory
from taskhub.core.dependencies import get_redis, load_active_user, verify_access_token
from taskhub.core.websocket import ConnectionManager, project_room, task_room, team_room
from taskhub.models.base import utcnow
from taskhub.schemas.events import ErrorPayload, RoomRequest
from taskhub.services.realtime_service import RealtimeService

logger = logging.getLogger(__name__)

router = APIRouter()

_ROOM_NAMES = {"team": team_room, "project": project_room, "task": task_room}


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(..., description="JWT access token"),
    redis: aioredis.Redis = Depends(get_redis),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> None:
    """
    On connect:
    - Validate the access token and load the user
    - Register the connection and put it in the user's own room

    Every join is re-checked against current membership.
    """
    try:
        identity = await verify_access_token(token, redis)
        async with session_factory() as db:
            user = await load_active_user(db, identity)
    except HTTPException:
        await websocket.close(code=4001)
        return

    manager: ConnectionManager = websocket.app.state.connections
    connection_id = await manager.connect(user_id=str(user.id), websocket=websocket)

    try:
        await manager.emit_to_connection(
            connection_id,
            "connected",
            {"user_id": str(user.id), "timestamp": utcnow().isoformat()},
        )

        while True:
            raw = await websocket.receive_text()
            try:
                request = RoomRequest.model_validate_json(raw)
            except ValidationError:
                error = ErrorPayload(code="INVALID_MESSAGE", message="Invalid room request")
                await manager.emit_to_connection(connection_id, "error", error.model_dump())
                continue

            if request.action == "leave":
                room = _ROOM_NAMES[request.room](request.id)
                manager.leave_room(connection_id, room)
                await manager.emit_to_connection(connection_id, "room:left", {"room": room})
                continue

            try:
                async with session_factory() as db:
                    room = await RealtimeService(db).authorize_room(user, request.room, request.id)
            except HTTPException as exc:
                error = ErrorPayload.model_validate(exc.detail)
                await manager.emit_to_connection(connection_id, "error", error.model_dump())
                continue
            manager.join_room(connection_id, room)
            await manager.emit_to_connection(connection_id, "room:joined", {"room": room})

    except WebSocketDisconnect:
        manager.disconnect(connection_id)
    except Exception as exc:
        logger.warning("WebSocket error for user_id=%s: %s", user.id, exc)
        manager.disconnect(connection_id)
