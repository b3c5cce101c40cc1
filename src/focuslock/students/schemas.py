"""Request/response schemas for student workflow endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    """Request body accepting snake_case or the camelCase keys the web client sends."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Check-in
# ---------------------------------------------------------------------------


class CheckinRequest(RequestModel):
    """Daily check-in submitted by the student client."""

    student_id: str = Field(..., min_length=1, max_length=64)
    focus_minutes: float = Field(0, ge=0)
    quiz_score: float = Field(0, ge=0, le=10)
    page_visibility_events: int = Field(0, ge=0)
    cheater_detected: bool = False


class CheckinResponse(BaseModel):
    status: str
    message: str
    log_id: int
    is_success: bool
    reasons: list[str]


class CheatSignalRequest(RequestModel):
    student_id: str = Field(..., min_length=1, max_length=64)
    reason: str | None = Field(None, max_length=128)


class CheatSignalResponse(BaseModel):
    accepted: bool


class CheatSignalBatchRequest(RequestModel):
    events: list[CheatSignalRequest] = Field(..., min_length=1, max_length=100)


class CheatSignalBatchResponse(BaseModel):
    total: int
    accepted: int
    rejected: int


# ---------------------------------------------------------------------------
# Interventions
# ---------------------------------------------------------------------------


class AssignInterventionRequest(RequestModel):
    """Mentor assigns a remedial task."""

    student_id: str = Field(..., min_length=1, max_length=64)
    task: str = Field(..., min_length=1)
    mentor_notes: str | None = None


class AssignInterventionResponse(BaseModel):
    intervention_id: int
    student_id: str
    task: str
    status: str
    assigned_at: datetime


class CompleteInterventionRequest(RequestModel):
    student_id: str = Field(..., min_length=1, max_length=64)
    intervention_id: int = Field(..., gt=0)


class CompleteInterventionResponse(BaseModel):
    student_id: str
    intervention_id: int
    status: str
    completed_at: datetime
    unlocked_at: datetime


# ---------------------------------------------------------------------------
# Status fetch
# ---------------------------------------------------------------------------


class InterventionResponse(BaseModel):
    id: int
    task: str
    mentor_notes: str | None = None
    status: str
    assigned_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class StudentStatusResponse(BaseModel):
    """Snapshot a client fetches to resync after (re)connecting."""

    student_id: str
    status: str
    current_task: str | None = None
    last_checkin_at: datetime | None = None
    locked_at: datetime | None = None
    unlocked_at: datetime | None = None
    latest_intervention: InterventionResponse | None = None

    model_config = {"from_attributes": True}
