"""WebSocket integration tests — protocol, rooms and live status push."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from focuslock.config import get_settings


@pytest.fixture
def test_client(tmp_path, monkeypatch) -> Generator[TestClient, None, None]:
    """Sync TestClient with the full lifespan against a throwaway SQLite file."""
    monkeypatch.setenv("FOCUSLOCK_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'ws.db'}")
    monkeypatch.setenv("FOCUSLOCK_LOG_FORMAT", "console")
    get_settings.cache_clear()

    from focuslock.main import create_app

    with TestClient(create_app()) as client:
        yield client

    get_settings.cache_clear()


class TestProtocol:
    def test_subscribe_ack(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "student_id": "alice-2024"})
            ack = ws.receive_json()
            assert ack["type"] == "subscribed"
            assert ack["room"] == "student_alice-2024"
            assert ack["studentId"] == "alice-2024"
            assert "timestamp" in ack

    def test_camel_case_student_id_accepted(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "studentId": "bob"})
            assert ws.receive_json()["room"] == "student_bob"

    def test_malformed_subscribe_dropped(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe"})
            ws.send_json({"action": "subscribe", "student_id": "   "})
            ws.send_json({"action": "ping"})
            # Nothing was sent for the malformed subscribes
            assert ws.receive_json() == {"type": "pong"}
        assert test_client.app.state.registry.get_stats()["rooms"] == {}

    def test_invalid_json(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            msg = ws.receive_json()
            assert msg == {"type": "error", "message": "Invalid JSON"}

    def test_unknown_action(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "dance"})
            msg = ws.receive_json()
            assert msg["type"] == "error"
            assert "dance" in msg["message"]

    def test_unsubscribe(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "student_id": "alice"})
            ws.receive_json()
            ws.send_json({"action": "unsubscribe", "student_id": "alice"})
            assert ws.receive_json() == {"type": "unsubscribed", "room": "student_alice"}
        assert test_client.app.state.registry.get_stats()["rooms"] == {}

    def test_disconnect_cleans_rooms(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "student_id": "alice"})
            ws.receive_json()
            assert test_client.app.state.registry.get_stats()["rooms"] == {"student_alice": 1}
        assert test_client.app.state.registry.connection_count == 0


class TestLivePush:
    def test_checkin_pushed_to_room(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "subscribe", "student_id": "alice"})
            ws.receive_json()

            response = test_client.post("/api/daily/checkin", json={
                "student_id": "alice",
                "focus_minutes": 30,
                "quiz_score": 5,
            })
            assert response.status_code == 200

            msg = ws.receive_json()
            assert msg["event"] == "status"
            assert msg["data"]["status"] == "needs_intervention"
            assert msg["data"]["logId"] == response.json()["log_id"]

    def test_cheater_broadcast(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as observer, test_client.websocket_connect("/ws") as student:
            # Observers watch a different room; the signal is not room-scoped
            observer.send_json({"action": "subscribe", "student_id": "someone-else"})
            observer.receive_json()
            student.send_json({"action": "cheater", "student_id": "alice", "reason": "tab_switch"})

            msg = observer.receive_json()
            assert msg["event"] == "cheater_event"
            assert msg["data"]["studentId"] == "alice"
            assert msg["data"]["reason"] == "tab_switch"
            assert "connId" in msg["data"]

    def test_cheater_without_student_dropped(self, test_client: TestClient) -> None:
        with test_client.websocket_connect("/ws") as ws:
            ws.send_json({"action": "cheater", "reason": "tab_switch"})
            ws.send_json({"action": "ping"})
            assert ws.receive_json() == {"type": "pong"}
