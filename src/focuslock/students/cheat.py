"""Cheat-signal side channel (tab switches, hidden window).

A signal marks the student's latest check-in and is broadcast to every
observer immediately. It never changes the student's status; the flag is
picked up by the next check-in evaluation instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from focuslock.errors import DependencyError, ValidationError
from focuslock.students import store
from focuslock.students.locks import StudentLocks
from focuslock.students.validation import require_student_id
from focuslock.ws.notifier import CHEATER_EVENT, Notifier

logger = structlog.get_logger()

DEFAULT_REASON = "unknown"


@dataclass(frozen=True)
class CheatSignalResult:
    accepted: bool
    student_id: str
    reason: str
    log_id: int | None = None


@dataclass(frozen=True)
class CheatBatchResult:
    total: int
    accepted: int
    rejected: int
    results: tuple[CheatSignalResult, ...]


class CheatSignalIngest:
    def __init__(
        self,
        sessions: Callable[[], AsyncSession],
        notifier: Notifier,
        locks: StudentLocks,
    ) -> None:
        self.sessions = sessions
        self.notifier = notifier
        self.locks = locks

    async def report(
        self,
        student_id: object,
        reason: object = None,
        conn_id: str | None = None,
    ) -> CheatSignalResult:
        """Flag the latest check-in and broadcast the signal.

        ``accepted`` is False when the student has no check-in yet or the
        store is unreachable; the broadcast happens either way.
        """
        sid = require_student_id(student_id)
        reason_text = str(reason).strip() if reason else ""
        reason_text = reason_text or DEFAULT_REASON

        log_id: int | None = None
        try:
            async with self.locks.for_student(sid):
                async with store.unit_of_work(self.sessions) as db:
                    checkin = await store.patch_latest_checkin(db, sid)
                    if checkin is not None:
                        log_id = checkin.id
        except DependencyError:
            logger.error("cheat_signal_not_recorded", student_id=sid, reason=reason_text)
        else:
            if log_id is None:
                logger.warning("cheat_signal_without_checkin", student_id=sid, reason=reason_text)
            else:
                logger.info("cheat_signal_recorded", student_id=sid, reason=reason_text, log_id=log_id)

        payload: dict[str, object] = {"studentId": sid, "reason": reason_text}
        if conn_id is not None:
            payload["connId"] = conn_id
        try:
            await self.notifier.broadcast(CHEATER_EVENT, payload)
        except Exception:
            logger.exception("cheat_signal_broadcast_failed", student_id=sid)

        return CheatSignalResult(accepted=log_id is not None, student_id=sid, reason=reason_text, log_id=log_id)

    async def report_many(self, events: list[tuple[object, object]]) -> CheatBatchResult:
        """Report several ``(student_id, reason)`` signals one after another.

        An event with an invalid student id is counted as rejected and does
        not stop the rest of the batch.
        """
        if not events:
            raise ValidationError("events must be a non-empty list")

        results: list[CheatSignalResult] = []
        invalid = 0
        for student_id, reason in events:
            try:
                results.append(await self.report(student_id, reason))
            except ValidationError:
                invalid += 1

        accepted = sum(1 for r in results if r.accepted)
        logger.info("cheat_signal_batch", total=len(events), accepted=accepted, invalid=invalid)
        return CheatBatchResult(
            total=len(events),
            accepted=accepted,
            rejected=len(events) - accepted,
            results=tuple(results),
        )
