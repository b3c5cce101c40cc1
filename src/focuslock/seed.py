"""Demo student seed — idempotent, never touches an existing row."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from focuslock.db.models import Student
from focuslock.students import store

logger = logging.getLogger(__name__)


async def seed_student(
    db: AsyncSession,
    student_id: str,
    name: str | None = None,
    email: str | None = None,
) -> Student:
    """Create the student in the initial on_track state if it does not exist yet."""
    existing = await store.get_student(db, student_id)
    if existing is not None:
        return existing

    student = await store.create_student(db, student_id, name=name, email=email)
    await db.commit()
    logger.info("Seeded demo student %s", student_id)
    return student
