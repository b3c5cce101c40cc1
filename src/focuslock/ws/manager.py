"""WebSocket room registry.

Tracks active WebSocket connections and the per-student rooms they joined.
A room is named ``student_<studentId>``; membership lives only in this process
and disappears with the connection.
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass, field

import structlog
from fastapi import WebSocket

from focuslock.students.validation import normalize_student_id

logger = structlog.get_logger()

ROOM_PREFIX = "student_"
DEFAULT_SEND_TIMEOUT = 2.0


def room_name(student_id: str) -> str:
    return f"{ROOM_PREFIX}{student_id}"


@dataclass
class ClientConnection:
    """Represents a single WebSocket client."""

    websocket: WebSocket
    rooms: set[str] = field(default_factory=set)
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0


class RoomRegistry:
    """Maps student rooms to live connections.

    Safe for asyncio via the single-threaded event loop: membership is only
    mutated between awaits. A send that does not finish within
    ``send_timeout`` seconds counts as failed and drops the connection.
    """

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT) -> None:
        self.send_timeout = send_timeout
        self._connections: dict[str, ClientConnection] = {}  # conn_id -> client
        self._rooms: dict[str, set[str]] = defaultdict(set)  # room -> {conn_ids}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket, conn_id: str) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        self._connections[conn_id] = ClientConnection(websocket=websocket)
        logger.info("ws_connected", conn_id=conn_id)

    async def disconnect(self, conn_id: str) -> None:
        """Remove a connection and every room membership it held."""
        client = self._connections.pop(conn_id, None)
        if client is None:
            return

        for room in client.rooms:
            self._discard(room, conn_id)

        logger.info("ws_disconnected", conn_id=conn_id, rooms=sorted(client.rooms))

    async def subscribe(self, conn_id: str, student_id: object) -> str | None:
        """Join the student's room. Returns the room name, or None if rejected.

        Subscribing twice to the same room is a no-op.
        """
        client = self._connections.get(conn_id)
        if client is None:
            return None

        normalized = normalize_student_id(student_id)
        if normalized is None:
            logger.warning("ws_subscribe_without_student_id", conn_id=conn_id)
            return None

        room = room_name(normalized)
        client.rooms.add(room)
        self._rooms[room].add(conn_id)
        logger.info("ws_subscribed", conn_id=conn_id, room=room)
        return room

    async def unsubscribe(self, conn_id: str, student_id: object) -> str | None:
        """Leave the student's room."""
        client = self._connections.get(conn_id)
        normalized = normalize_student_id(student_id)
        if client is None or normalized is None:
            return None

        room = room_name(normalized)
        client.rooms.discard(room)
        self._discard(room, conn_id)
        return room

    def members(self, room: str) -> set[str]:
        return set(self._rooms.get(room, set()))

    async def send_to_room(self, room: str, payload: str) -> int:
        """Send a serialized message to every member of a room.

        Returns the number of clients that received the message.
        """
        conn_ids = list(self._rooms.get(room, set()))
        if not conn_ids:
            return 0
        return await self._send_many(conn_ids, payload)

    async def send_to_all(self, payload: str) -> int:
        """Send a serialized message to every live connection."""
        return await self._send_many(list(self._connections), payload)

    async def _send_many(self, conn_ids: list[str], payload: str) -> int:
        sent = 0
        failed: list[str] = []

        for conn_id in conn_ids:
            client = self._connections.get(conn_id)
            if client is None:
                failed.append(conn_id)
                continue
            try:
                await asyncio.wait_for(client.websocket.send_text(payload), timeout=self.send_timeout)
                client.messages_sent += 1
                sent += 1
            except asyncio.TimeoutError:
                logger.warning("ws_send_timeout", conn_id=conn_id, timeout=self.send_timeout)
                failed.append(conn_id)
            except Exception:
                failed.append(conn_id)

        # Clean up failed connections
        for conn_id in failed:
            await self.disconnect(conn_id)

        return sent

    def _discard(self, room: str, conn_id: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(conn_id)
        if not members:
            del self._rooms[room]

    def get_stats(self) -> dict:
        """Get connection statistics."""
        return {
            "total_connections": len(self._connections),
            "rooms": {room: len(conns) for room, conns in self._rooms.items() if conns},
        }
