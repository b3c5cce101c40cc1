"""HTTP API tests through the ASGI app."""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from focuslock.notify.webhook import WebhookClient

pytestmark = pytest.mark.asyncio


async def _fail(client: AsyncClient, student_id: str = "alice-2024") -> dict:
    response = await client.post("/api/daily/checkin", json={
        "student_id": student_id,
        "focus_minutes": 30,
        "quiz_score": 5,
    })
    assert response.status_code == 200
    return response.json()


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_ping(self, client: AsyncClient) -> None:
        response = await client.get("/api/ping")
        assert response.status_code == 200
        assert response.json()["message"] == "pong"

    async def test_version(self, client: AsyncClient) -> None:
        response = await client.get("/version")
        assert response.status_code == 200
        assert "version" in response.json()

    async def test_ready_reports_checks(self, client: AsyncClient) -> None:
        response = await client.get("/ready")
        assert response.status_code == 200
        body = response.json()
        assert body["checks"]["database"] == "ok"
        assert body["websocket"] == {"total_connections": 0, "rooms": {}}


class TestCheckin:
    async def test_failure(self, client: AsyncClient) -> None:
        body = await _fail(client)
        assert body["status"] == "needs_intervention"
        assert body["message"] == "Analysis in progress. Waiting for mentor..."
        assert body["is_success"] is False
        assert body["reasons"] == ["low_focus", "low_quiz_score"]
        assert body["log_id"] > 0

    async def test_success(self, client: AsyncClient) -> None:
        response = await client.post("/api/daily/checkin", json={
            "student_id": "bob",
            "focus_minutes": 90,
            "quiz_score": 9,
            "page_visibility_events": 0,
            "cheater_detected": False,
        })
        assert response.status_code == 200
        assert response.json()["status"] == "on_track"
        assert response.json()["reasons"] == []

    async def test_blank_student_id(self, client: AsyncClient) -> None:
        response = await client.post("/api/daily/checkin", json={"student_id": "   ", "focus_minutes": 90})
        assert response.status_code == 400
        assert response.json() == {"detail": "studentId is required", "error": "ValidationError"}

    @pytest.mark.parametrize(
        "payload",
        [
            {"focus_minutes": 90, "quiz_score": 9},
            {"student_id": "alice", "quiz_score": 11},
            {"student_id": "alice", "focus_minutes": -1},
        ],
    )
    async def test_malformed_body(self, client: AsyncClient, payload: dict) -> None:
        response = await client.post("/api/daily/checkin", json=payload)
        assert response.status_code == 422


class TestInterventions:
    async def test_full_cycle(self, client: AsyncClient) -> None:
        await _fail(client)

        response = await client.post("/api/interventions/assign", json={
            "student_id": "alice-2024",
            "task": "Review chapter 3",
            "mentor_notes": "Focus on the worked examples",
        })
        assert response.status_code == 201
        assigned = response.json()
        assert assigned["status"] == "remedial"
        assert assigned["task"] == "Review chapter 3"

        response = await client.get("/api/student/alice-2024")
        assert response.status_code == 200
        snapshot = response.json()
        assert snapshot["status"] == "remedial"
        assert snapshot["current_task"] == "Review chapter 3"
        assert snapshot["latest_intervention"]["id"] == assigned["intervention_id"]
        assert snapshot["latest_intervention"]["mentor_notes"] == "Focus on the worked examples"

        response = await client.post("/api/interventions/complete", json={
            "student_id": "alice-2024",
            "intervention_id": assigned["intervention_id"],
        })
        assert response.status_code == 200
        completed = response.json()
        assert completed["status"] == "on_track"
        assert completed["completed_at"] == completed["unlocked_at"]

        snapshot = (await client.get("/api/student/alice-2024")).json()
        assert snapshot["status"] == "on_track"
        assert snapshot["current_task"] is None
        assert snapshot["latest_intervention"]["status"] == "completed"

    async def test_assign_unknown_student(self, client: AsyncClient) -> None:
        response = await client.post("/api/interventions/assign", json={"student_id": "ghost", "task": "Read"})
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    async def test_assign_blank_task(self, client: AsyncClient) -> None:
        await _fail(client)
        response = await client.post("/api/interventions/assign", json={"student_id": "alice-2024", "task": "  "})
        assert response.status_code == 400

    async def test_complete_twice(self, client: AsyncClient) -> None:
        await _fail(client)
        assigned = (await client.post("/api/interventions/assign", json={
            "student_id": "alice-2024",
            "task": "Review chapter 3",
        })).json()
        payload = {"student_id": "alice-2024", "intervention_id": assigned["intervention_id"]}

        assert (await client.post("/api/interventions/complete", json=payload)).status_code == 200
        response = await client.post("/api/interventions/complete", json=payload)

        assert response.status_code == 409
        assert response.json()["error"] == "ConflictError"

    async def test_complete_unknown_intervention(self, client: AsyncClient) -> None:
        await _fail(client)
        response = await client.post("/api/interventions/complete", json={
            "student_id": "alice-2024",
            "intervention_id": 12345,
        })
        assert response.status_code == 404

    async def test_complete_requires_positive_id(self, client: AsyncClient) -> None:
        response = await client.post("/api/interventions/complete", json={
            "student_id": "alice-2024",
            "intervention_id": 0,
        })
        assert response.status_code == 422


class TestStudentStatus:
    async def test_unknown_student(self, client: AsyncClient) -> None:
        response = await client.get("/api/student/ghost")
        assert response.status_code == 404

    async def test_after_checkin(self, client: AsyncClient) -> None:
        await _fail(client)
        body = (await client.get("/api/student/alice-2024")).json()
        assert body["student_id"] == "alice-2024"
        assert body["status"] == "needs_intervention"
        assert body["locked_at"] is not None
        assert body["latest_intervention"] is None


class TestCheatSignal:
    async def test_without_checkin(self, client: AsyncClient) -> None:
        response = await client.post("/api/daily/cheat-signal", json={"student_id": "alice-2024"})
        assert response.status_code == 200
        assert response.json() == {"accepted": False}

    async def test_flags_next_checkin(self, client: AsyncClient) -> None:
        await client.post("/api/daily/checkin", json={"student_id": "carol", "focus_minutes": 90, "quiz_score": 9})

        response = await client.post("/api/daily/cheat-signal", json={"student_id": "carol", "reason": "tab_switch"})
        assert response.json() == {"accepted": True}

        response = await client.post(
            "/api/daily/checkin", json={"student_id": "carol", "focus_minutes": 90, "quiz_score": 9}
        )
        assert response.json()["status"] == "needs_intervention"
        assert response.json()["reasons"] == ["cheat_flag"]


class TestCamelCaseBodies:
    async def test_checkin_with_client_keys(self, client: AsyncClient) -> None:
        response = await client.post("/api/daily/checkin", json={
            "studentId": "dana",
            "focusMinutes": 90,
            "quizScore": 9,
            "pageVisibilityEvents": 0,
            "cheaterDetected": False,
        })
        assert response.status_code == 200
        assert response.json()["status"] == "on_track"

    async def test_complete_with_client_keys(self, client: AsyncClient) -> None:
        await _fail(client, "dana")
        assigned = (await client.post("/api/interventions/assign", json={
            "studentId": "dana",
            "task": "Review chapter 3",
            "mentorNotes": "Take your time",
        })).json()

        response = await client.post("/api/interventions/complete", json={
            "studentId": "dana",
            "interventionId": assigned["intervention_id"],
        })
        assert response.status_code == 200
        assert response.json()["status"] == "on_track"


class TestCheatSignalBatch:
    async def test_batch(self, client: AsyncClient) -> None:
        await client.post("/api/daily/checkin", json={"student_id": "erin", "focus_minutes": 90, "quiz_score": 9})

        response = await client.post("/api/daily/cheat-signal/batch", json={"events": [
            {"studentId": "erin", "reason": "tab_switch"},
            {"studentId": "nobody"},
        ]})

        assert response.status_code == 200
        assert response.json() == {"total": 2, "accepted": 1, "rejected": 1}

    async def test_empty_batch_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/daily/cheat-signal/batch", json={"events": []})
        assert response.status_code == 422


class TestFailureWebhook:
    async def test_reason_renders_whole_numbers(self, app: FastAPI, client: AsyncClient) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200)

        app.state.engine.webhook = WebhookClient(
            "https://hooks.example.com/failure",
            transport=httpx.MockTransport(handler),
        )
        await _fail(client)
        await app.state.engine.drain()

        assert seen[0]["reason"] == "Low focus time: 30 minutes (needed > 60); Low quiz score: 5 (needed > 7)"
