"""WebSocket endpoint with per-student rooms and the cheat-signal side channel."""

import json
import uuid
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from focuslock.errors import ValidationError
from focuslock.students.cheat import CheatSignalIngest
from focuslock.ws.manager import RoomRegistry

logger = structlog.get_logger()

router = APIRouter()


def _student_id_of(msg: dict) -> object:
    return msg.get("student_id", msg.get("studentId"))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Single WebSocket endpoint.

    Protocol:
        Client -> Server:
            {"action": "subscribe", "student_id": "alice-2024"}
            {"action": "unsubscribe", "student_id": "alice-2024"}
            {"action": "cheater", "student_id": "alice-2024", "reason": "tab_switch"}
            {"action": "ping"}

        Server -> Client:
            {"event": "status", "room": "student_alice-2024", "data": {...}}
            {"event": "cheater_event", "data": {...}}
            {"type": "subscribed", "room": "student_alice-2024", ...}
            {"type": "unsubscribed", "room": "student_alice-2024"}
            {"type": "pong"}
            {"type": "error", "message": "..."}

    Subscribe and cheater messages without a usable student id are dropped
    with a warning.
    """
    registry: RoomRegistry = websocket.app.state.registry
    ingest: CheatSignalIngest = websocket.app.state.cheat_ingest

    conn_id = str(uuid.uuid4())
    await registry.connect(websocket, conn_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue
            if not isinstance(msg, dict):
                await websocket.send_json({"type": "error", "message": "Expected a JSON object"})
                continue

            action = msg.get("action")

            if action == "subscribe":
                room = await registry.subscribe(conn_id, _student_id_of(msg))
                if room is not None:
                    await websocket.send_json({
                        "type": "subscribed",
                        "room": room,
                        "studentId": room.removeprefix("student_"),
                        "message": "Subscribed to real-time updates",
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    })

            elif action == "unsubscribe":
                room = await registry.unsubscribe(conn_id, _student_id_of(msg))
                if room is not None:
                    await websocket.send_json({"type": "unsubscribed", "room": room})

            elif action == "cheater":
                try:
                    await ingest.report(_student_id_of(msg), msg.get("reason"), conn_id=conn_id)
                except ValidationError:
                    logger.warning("ws_cheater_without_student_id", conn_id=conn_id)

            elif action == "ping":
                await websocket.send_json({"type": "pong"})

            else:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Unknown action: {action}",
                })

    except WebSocketDisconnect:
        await registry.disconnect(conn_id)
    except Exception:
        logger.exception("ws_error", conn_id=conn_id)
        await registry.disconnect(conn_id)
