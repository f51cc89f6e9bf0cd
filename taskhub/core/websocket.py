"""
WebSocket connection manager.

In-memory room registry of active connections, single process only.
A connection can sit in any number of rooms; every connection is put in
its owner's "user:{id}" room on connect and stays there until it closes.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def user_room(user_id: Any) -> str:
    return f"user:{user_id}"


def team_room(team_id: Any) -> str:
    return f"team:{team_id}"


def project_room(project_id: Any) -> str:
    return f"project:{project_id}"


def task_room(task_id: Any) -> str:
    return f"task:{task_id}"


class ConnectionManager:
    """
    Maps connection_id → WebSocket, room → connection ids and the reverse.
    A user may hold several connections (tabs); each is tracked separately.
    """

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._rooms: dict[str, set[str]] = {}
        self._memberships: dict[str, set[str]] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = websocket
        self._memberships[connection_id] = set()
        self.join_room(connection_id, user_room(user_id))
        logger.info(
            "WebSocket connected: user_id=%s connection_id=%s active=%d",
            user_id,
            connection_id,
            self.connection_count,
        )
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        for room in self.rooms_of(connection_id):
            self.leave_room(connection_id, room)
        self._memberships.pop(connection_id, None)
        if self._connections.pop(connection_id, None) is not None:
            logger.info(
                "WebSocket disconnected: connection_id=%s active=%d", connection_id, self.connection_count
            )

    def join_room(self, connection_id: str, room: str) -> None:
        if connection_id not in self._connections:
            return
        self._rooms.setdefault(room, set()).add(connection_id)
        self._memberships[connection_id].add(room)
        logger.debug("connection_id=%s joined %s", connection_id, room)

    def leave_room(self, connection_id: str, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._rooms[room]
        if connection_id in self._memberships:
            self._memberships[connection_id].discard(room)
        logger.debug("connection_id=%s left %s", connection_id, room)

    async def emit_to_room(self, room: str, event: str, data: dict[str, Any]) -> None:
        for connection_id in self.connections_in(room):
            await self.emit_to_connection(connection_id, event, data)

    async def emit_to_connection(self, connection_id: str, event: str, data: dict[str, Any]) -> None:
        """
        Send one event to one connection.
        Silently removes a stale connection on any send error.
        """
        websocket = self._connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_json({"event": event, "data": data})
        except Exception as exc:
            logger.warning(
                "Failed to send to connection_id=%s, removing connection: %s",
                connection_id,
                exc,
            )
            self.disconnect(connection_id)

    def rooms_of(self, connection_id: str) -> set[str]:
        return set(self._memberships.get(connection_id, ()))

    def connections_in(self, room: str) -> set[str]:
        return set(self._rooms.get(room, ()))

    @property
    def connection_count(self) -> int:
        return len(self._connections)
