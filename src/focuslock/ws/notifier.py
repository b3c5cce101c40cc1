"""Fan-out of student status changes to live WebSocket clients.

Delivery is best-effort and at-most-once: only connections currently in the
room receive a message, nothing is queued for absent clients, and missed
events are never replayed. Clients resync through the status endpoint.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import structlog

from focuslock.ws.manager import RoomRegistry, room_name

logger = structlog.get_logger()

STATUS_EVENT = "status"
CHEATER_EVENT = "cheater_event"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_default(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Notifier:
    """Publishes payloads through an injected room registry."""

    def __init__(self, registry: RoomRegistry) -> None:
        self.registry = registry

    async def publish(self, student_id: str, payload: dict[str, Any]) -> int:
        """Deliver a status payload to every connection in the student's room.

        Returns the number of recipients; an empty room is not an error.
        """
        room = room_name(student_id)
        data = {**payload, "timestamp": _timestamp()}
        message = json.dumps({"event": STATUS_EVENT, "room": room, "data": data}, default=_json_default)
        sent = await self.registry.send_to_room(room, message)
        logger.debug("status_published", room=room, status=data.get("status"), recipients=sent)
        return sent

    async def broadcast(self, event: str, payload: dict[str, Any]) -> int:
        """Deliver a payload to every live connection regardless of room."""
        data = {**payload, "timestamp": _timestamp()}
        message = json.dumps({"event": event, "data": data}, default=_json_default)
        sent = await self.registry.send_to_all(message)
        logger.debug("event_broadcast", event=event, recipients=sent)
        return sent
