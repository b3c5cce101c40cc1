"""Status store: persistence access for students, check-ins and interventions.

All functions take an open session and never commit; the caller owns the
transaction so that a student row and its derived log/intervention row are
written together or not at all. Missing rows are reported as ``None``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from focuslock.db.models import DailyCheckin, Intervention, Student
from focuslock.errors import DependencyError
from focuslock.students.transitions import ON_TRACK

logger = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_student(db: AsyncSession, student_id: str) -> Student | None:
    """Get a student by external id."""
    result = await db.execute(select(Student).where(Student.student_id == student_id))
    return result.scalar_one_or_none()


async def create_student(
    db: AsyncSession,
    student_id: str,
    name: str | None = None,
    email: str | None = None,
    status: str = ON_TRACK,
) -> Student:
    """Insert a new student row in the initial state."""
    now = utcnow()
    student = Student(
        student_id=student_id,
        name=name,
        email=email,
        status=status,
        current_task=None,
        created_at=now,
        updated_at=now,
    )
    db.add(student)
    await db.flush()
    return student


async def update_student(db: AsyncSession, student: Student, **patch: object) -> Student:
    """Apply a column patch to a student row."""
    for key, value in patch.items():
        setattr(student, key, value)
    student.updated_at = utcnow()
    await db.flush()
    return student


async def append_checkin(
    db: AsyncSession,
    student_id: str,
    focus_minutes: float,
    quiz_score: float,
    page_visibility_events: int,
    cheater_detected: bool,
    is_success: bool,
) -> DailyCheckin:
    """Append a check-in to the daily log."""
    now = utcnow()
    checkin = DailyCheckin(
        student_id=student_id,
        focus_minutes=focus_minutes,
        quiz_score=quiz_score,
        page_visibility_events=page_visibility_events,
        cheater_detected=cheater_detected,
        is_success=is_success,
        cheat_signal_pending=False,
        created_at=now,
        updated_at=now,
    )
    db.add(checkin)
    await db.flush()
    return checkin


async def get_latest_checkin(db: AsyncSession, student_id: str) -> DailyCheckin | None:
    """Most recent check-in for a student."""
    result = await db.execute(
        select(DailyCheckin)
        .where(DailyCheckin.student_id == student_id)
        .order_by(DailyCheckin.created_at.desc(), DailyCheckin.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def patch_latest_checkin(db: AsyncSession, student_id: str) -> DailyCheckin | None:
    """Record a cheat signal on the latest check-in. Returns None if the student has none."""
    checkin = await get_latest_checkin(db, student_id)
    if checkin is None:
        return None
    checkin.page_visibility_events += 1
    checkin.cheater_detected = True
    checkin.cheat_signal_pending = True
    checkin.updated_at = utcnow()
    await db.flush()
    return checkin


async def consume_cheat_signal(db: AsyncSession, checkin: DailyCheckin) -> None:
    """Mark a pending cheat signal as applied to an evaluation."""
    checkin.cheat_signal_pending = False
    checkin.updated_at = utcnow()
    await db.flush()


async def create_intervention(
    db: AsyncSession,
    student_id: str,
    task: str,
    mentor_notes: str | None = None,
) -> Intervention:
    """Create an assigned intervention."""
    now = utcnow()
    intervention = Intervention(
        student_id=student_id,
        task=task,
        mentor_notes=mentor_notes,
        status="assigned",
        assigned_at=now,
        updated_at=now,
    )
    db.add(intervention)
    await db.flush()
    return intervention


async def get_intervention(db: AsyncSession, intervention_id: int) -> Intervention | None:
    result = await db.execute(select(Intervention).where(Intervention.id == intervention_id))
    return result.scalar_one_or_none()


async def update_intervention(db: AsyncSession, intervention: Intervention, **patch: object) -> Intervention:
    for key, value in patch.items():
        setattr(intervention, key, value)
    intervention.updated_at = utcnow()
    await db.flush()
    return intervention


async def get_latest_intervention(db: AsyncSession, student_id: str) -> Intervention | None:
    """The student's most recently assigned intervention."""
    result = await db.execute(
        select(Intervention)
        .where(Intervention.student_id == student_id)
        .order_by(Intervention.assigned_at.desc(), Intervention.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

_CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, OSError)


@asynccontextmanager
async def unit_of_work(sessions: Callable[[], AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Open a session and a transaction that commits on success.

    Any exception rolls the whole transaction back. Connectivity failures
    surface as DependencyError; domain errors propagate unchanged.
    """
    try:
        async with sessions() as db, db.begin():
            yield db
    except _CONNECTIVITY_ERRORS as exc:
        logger.error("store_unavailable", error=str(exc))
        raise DependencyError("Status store unavailable") from exc
