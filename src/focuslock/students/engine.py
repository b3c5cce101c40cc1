"""Transition engine: the single writer of student status.

Each event runs in two stages:

1. Under the student's lock, validate, resolve the target status from the
   transition table, and commit the student row together with its log or
   intervention row in one transaction.
2. From the committed result, push the status to the student's room (still
   under the lock, so pushes leave in acceptance order) and schedule the
   failure webhook in the background.

Nothing in stage 2 can undo stage 1.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from focuslock.errors import ConflictError, NotFoundError
from focuslock.notify.webhook import WebhookClient
from focuslock.students import store
from focuslock.students.evaluation import describe_reasons, evaluate
from focuslock.students.locks import StudentLocks
from focuslock.students.transitions import (
    ASSIGN,
    CHECKIN_FAILURE,
    CHECKIN_SUCCESS,
    COMPLETE,
    NEEDS_INTERVENTION,
    ON_TRACK,
    REMEDIAL,
    next_status,
    transition_table,
)
from focuslock.students.validation import (
    clean_notes,
    require_intervention_id,
    require_student_id,
    require_task,
    validate_checkin,
)
from focuslock.ws.notifier import Notifier

logger = structlog.get_logger()

CHECKIN_MESSAGES: dict[str, str] = {
    ON_TRACK: "Check-in successful",
    NEEDS_INTERVENTION: "Analysis in progress. Waiting for mentor...",
    REMEDIAL: "Check-in recorded. Finish your assigned task to unlock.",
}
ASSIGNED_MESSAGE = "A mentor assigned you a task"
COMPLETED_MESSAGE = "Task completed. Welcome back on track!"


@dataclass(frozen=True)
class CheckinResult:
    status: str
    message: str
    log_id: int
    is_success: bool
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class AssignmentResult:
    intervention_id: int
    student_id: str
    task: str
    status: str
    assigned_at: datetime


@dataclass(frozen=True)
class CompletionResult:
    student_id: str
    intervention_id: int
    status: str
    completed_at: datetime
    unlocked_at: datetime


@dataclass(frozen=True)
class InterventionSnapshot:
    id: int
    task: str
    mentor_notes: str | None
    status: str
    assigned_at: datetime
    completed_at: datetime | None


@dataclass(frozen=True)
class StudentSnapshot:
    student_id: str
    status: str
    current_task: str | None
    last_checkin_at: datetime | None
    locked_at: datetime | None
    unlocked_at: datetime | None
    latest_intervention: InterventionSnapshot | None


class TransitionEngine:
    """Applies check-in, assignment and completion events to the status store."""

    def __init__(
        self,
        sessions: Callable[[], AsyncSession],
        notifier: Notifier,
        locks: StudentLocks | None = None,
        webhook: WebhookClient | None = None,
        checkin_overrides_remedial: bool = True,
    ) -> None:
        self.sessions = sessions
        self.notifier = notifier
        self.locks = locks if locks is not None else StudentLocks()
        self.webhook = webhook
        self.table = transition_table(checkin_overrides_remedial)
        self._background: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Check-in
    # ------------------------------------------------------------------

    async def submit_checkin(
        self,
        student_id: str,
        focus_minutes: float = 0,
        quiz_score: float = 0,
        page_visibility_events: int = 0,
        cheater_detected: bool = False,
    ) -> CheckinResult:
        """Evaluate a daily check-in and move the student accordingly.

        A student seen for the first time is created on the spot. A pending
        cheat signal on the previous check-in counts as ``cheater_detected``.
        """
        sid = require_student_id(student_id)
        focus, quiz, visibility, cheated = validate_checkin(
            focus_minutes, quiz_score, page_visibility_events, cheater_detected
        )

        async with self.locks.for_student(sid):
            async with store.unit_of_work(self.sessions) as db:
                student = await store.get_student(db, sid)
                if student is None:
                    student = await store.create_student(db, sid)
                    logger.info("student_created", student_id=sid)

                previous = await store.get_latest_checkin(db, sid)
                if previous is not None and previous.cheat_signal_pending:
                    await store.consume_cheat_signal(db, previous)
                    cheated = True

                evaluation = evaluate(focus, quiz, cheated)
                checkin = await store.append_checkin(
                    db,
                    sid,
                    focus_minutes=focus,
                    quiz_score=quiz,
                    page_visibility_events=visibility,
                    cheater_detected=cheated,
                    is_success=evaluation.is_success,
                )

                event = CHECKIN_SUCCESS if evaluation.is_success else CHECKIN_FAILURE
                previous_status = student.status
                target = next_status(self.table, previous_status, event)

                patch: dict[str, Any] = {"status": target, "last_checkin_at": checkin.created_at}
                if target != REMEDIAL:
                    patch["current_task"] = None
                if target == NEEDS_INTERVENTION:
                    patch["locked_at"] = checkin.created_at
                await store.update_student(db, student, **patch)

                current_task = student.current_task
                log_id = checkin.id

            result = CheckinResult(
                status=target,
                message=CHECKIN_MESSAGES[target],
                log_id=log_id,
                is_success=evaluation.is_success,
                reasons=evaluation.reasons,
            )
            logger.info(
                "checkin_recorded",
                student_id=sid,
                log_id=log_id,
                is_success=evaluation.is_success,
                reasons=list(evaluation.reasons),
                from_status=previous_status,
                to_status=target,
            )

            await self._publish(sid, {
                "type": "checkin",
                "status": target,
                "message": result.message,
                "logId": log_id,
                "currentTask": current_task,
            })

        if not evaluation.is_success:
            self._dispatch_webhook({
                "student_id": sid,
                "focus_minutes": focus,
                "quiz_score": quiz,
                "cheater_detected": cheated,
                "reason": describe_reasons(evaluation, focus, quiz),
                "log_id": log_id,
            })

        return result

    # ------------------------------------------------------------------
    # Mentor events
    # ------------------------------------------------------------------

    async def assign_intervention(
        self,
        student_id: str,
        task: str,
        mentor_notes: str | None = None,
    ) -> AssignmentResult:
        """Assign a remedial task; the student becomes remedial."""
        sid = require_student_id(student_id)
        task_text = require_task(task)
        notes = clean_notes(mentor_notes)

        async with self.locks.for_student(sid):
            async with store.unit_of_work(self.sessions) as db:
                student = await store.get_student(db, sid)
                if student is None:
                    raise NotFoundError(f"No student found with student_id {sid}")

                target = next_status(self.table, student.status, ASSIGN)
                intervention = await store.create_intervention(db, sid, task_text, notes)
                await store.update_student(db, student, status=target, current_task=task_text)

                result = AssignmentResult(
                    intervention_id=intervention.id,
                    student_id=sid,
                    task=task_text,
                    status=target,
                    assigned_at=intervention.assigned_at,
                )

            logger.info("intervention_assigned", student_id=sid, intervention_id=result.intervention_id)
            await self._publish(sid, {
                "type": "intervention_assigned",
                "status": target,
                "message": ASSIGNED_MESSAGE,
                "currentTask": task_text,
                "interventionId": result.intervention_id,
                "assignedAt": result.assigned_at,
                "mentorNotes": notes,
            })

        return result

    async def complete_intervention(self, student_id: str, intervention_id: int) -> CompletionResult:
        """Complete an assigned intervention; the student is unlocked."""
        sid = require_student_id(student_id)
        iid = require_intervention_id(intervention_id)

        async with self.locks.for_student(sid):
            async with store.unit_of_work(self.sessions) as db:
                student = await store.get_student(db, sid)
                if student is None:
                    raise NotFoundError(f"No student found with student_id {sid}")

                intervention = await store.get_intervention(db, iid)
                if intervention is None or intervention.student_id != sid:
                    raise NotFoundError(f"No intervention found with id {iid} for student {sid}")
                if intervention.status == "completed":
                    raise ConflictError("This intervention has already been marked as completed")

                target = next_status(self.table, student.status, COMPLETE)
                now = store.utcnow()
                await store.update_intervention(db, intervention, status="completed", completed_at=now)
                await store.update_student(db, student, status=target, current_task=None, unlocked_at=now)

                result = CompletionResult(
                    student_id=sid,
                    intervention_id=iid,
                    status=target,
                    completed_at=now,
                    unlocked_at=now,
                )

            logger.info("intervention_completed", student_id=sid, intervention_id=iid)
            await self._publish(sid, {
                "type": "task_completed",
                "status": target,
                "message": COMPLETED_MESSAGE,
                "currentTask": None,
                "interventionId": iid,
                "completedAt": now,
                "unlockedAt": now,
            })

        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_status(self, student_id: str) -> StudentSnapshot:
        """Current status plus latest intervention, for clients resyncing after reconnect."""
        sid = require_student_id(student_id)
        async with store.unit_of_work(self.sessions) as db:
            student = await store.get_student(db, sid)
            if student is None:
                raise NotFoundError(f"No student found with student_id {sid}")
            intervention = await store.get_latest_intervention(db, sid)

            latest = None
            if intervention is not None:
                latest = InterventionSnapshot(
                    id=intervention.id,
                    task=intervention.task,
                    mentor_notes=intervention.mentor_notes,
                    status=intervention.status,
                    assigned_at=intervention.assigned_at,
                    completed_at=intervention.completed_at,
                )
            return StudentSnapshot(
                student_id=student.student_id,
                status=student.status,
                current_task=student.current_task,
                last_checkin_at=student.last_checkin_at,
                locked_at=student.locked_at,
                unlocked_at=student.unlocked_at,
                latest_intervention=latest,
            )

    # ------------------------------------------------------------------
    # Stage 2: best-effort notifications
    # ------------------------------------------------------------------

    async def _publish(self, student_id: str, payload: dict[str, Any]) -> None:
        try:
            await self.notifier.publish(student_id, payload)
        except Exception:
            logger.exception("status_publish_failed", student_id=student_id)

    def _dispatch_webhook(self, payload: dict[str, Any]) -> None:
        if self.webhook is None or not self.webhook.enabled:
            return
        task = asyncio.create_task(self._send_webhook(self.webhook, payload))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    @staticmethod
    async def _send_webhook(webhook: WebhookClient, payload: dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(webhook.send(payload), timeout=webhook.timeout)
        except asyncio.TimeoutError:
            logger.warning("webhook_timeout", student_id=payload.get("student_id"))
        except Exception:
            logger.exception("webhook_dispatch_failed", student_id=payload.get("student_id"))

    async def drain(self) -> None:
        """Wait for in-flight webhook deliveries (shutdown, tests)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
