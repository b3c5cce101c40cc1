"""Input normalization shared by the HTTP, WebSocket and engine entry points."""

from __future__ import annotations

from focuslock.errors import ValidationError

MAX_QUIZ_SCORE = 10
MAX_STUDENT_ID_LENGTH = 64


def normalize_student_id(value: object) -> str | None:
    """Return the trimmed string form of a student id, or None if it is empty."""
    if value is None or isinstance(value, bool):
        return None
    normalized = str(value).strip()
    if not normalized or len(normalized) > MAX_STUDENT_ID_LENGTH:
        return None
    return normalized


def require_student_id(value: object) -> str:
    student_id = normalize_student_id(value)
    if student_id is None:
        raise ValidationError("studentId is required")
    return student_id


def _require_number(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError(f"{name} must be a number")
    return value


def validate_checkin(
    focus_minutes: object,
    quiz_score: object,
    page_visibility_events: object,
    cheater_detected: object,
) -> tuple[float, float, int, bool]:
    """Check numeric ranges of a check-in. Raises ValidationError."""
    focus = _require_number("focusMinutes", focus_minutes)
    if focus < 0:
        raise ValidationError("focusMinutes must be >= 0")

    quiz = _require_number("quizScore", quiz_score)
    if not 0 <= quiz <= MAX_QUIZ_SCORE:
        raise ValidationError(f"quizScore must be between 0 and {MAX_QUIZ_SCORE}")

    if isinstance(page_visibility_events, bool) or not isinstance(page_visibility_events, int):
        raise ValidationError("pageVisibilityEvents must be an integer")
    if page_visibility_events < 0:
        raise ValidationError("pageVisibilityEvents must be >= 0")

    if not isinstance(cheater_detected, bool):
        raise ValidationError("cheaterDetected must be a boolean")

    return focus, quiz, page_visibility_events, cheater_detected


def require_task(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("task must be a non-empty string")
    return value.strip()


def clean_notes(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("mentorNotes must be a string")
    return value.strip() or None


def require_intervention_id(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("interventionId must be a positive integer")
    return value
