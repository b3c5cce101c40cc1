"""ORM models for students, their daily check-in log and mentor interventions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from focuslock.db.base import Base


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------


class Student(Base):
    """Authoritative current state of one learner.

    ``current_task`` is non-null exactly when ``status == "remedial"``.
    Rows are only written by the transition engine.
    """

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="on_track", server_default="on_track")
    current_task: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_checkin_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unlocked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    checkins: Mapped[list[DailyCheckin]] = relationship("DailyCheckin", back_populates="student")
    interventions: Mapped[list[Intervention]] = relationship("Intervention", back_populates="student")


# ---------------------------------------------------------------------------
# Daily check-in log
# ---------------------------------------------------------------------------


class DailyCheckin(Base):
    """Append-only daily check-in entry.

    The cheat-signal side channel may patch ``page_visibility_events``,
    ``cheater_detected`` and ``cheat_signal_pending`` on the latest row only.
    """

    __tablename__ = "daily_checkins"
    __table_args__ = (Index("idx_checkin_student_created", "student_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False
    )
    focus_minutes: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    quiz_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    page_visibility_events: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    cheater_detected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    cheat_signal_pending: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    student: Mapped[Student] = relationship("Student", back_populates="checkins")


# ---------------------------------------------------------------------------
# Interventions
# ---------------------------------------------------------------------------


class Intervention(Base):
    """Mentor-assigned remedial task. ``status`` is ``assigned`` or ``completed``."""

    __tablename__ = "interventions"
    __table_args__ = (Index("idx_intervention_student_assigned", "student_id", "assigned_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False
    )
    task: Mapped[str] = mapped_column(Text, nullable=False)
    mentor_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="assigned", server_default="assigned")
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    student: Mapped[Student] = relationship("Student", back_populates="interventions")
