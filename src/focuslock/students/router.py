"""Student workflow endpoints: check-in, cheat signal, interventions, status fetch."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from focuslock.dependencies import get_cheat_ingest, get_engine
from focuslock.students.cheat import CheatSignalIngest
from focuslock.students.engine import TransitionEngine
from focuslock.students.schemas import (
    AssignInterventionRequest,
    AssignInterventionResponse,
    CheatSignalBatchRequest,
    CheatSignalBatchResponse,
    CheatSignalRequest,
    CheatSignalResponse,
    CheckinRequest,
    CheckinResponse,
    CompleteInterventionRequest,
    CompleteInterventionResponse,
    StudentStatusResponse,
)

router = APIRouter(prefix="/api", tags=["Students"])


# ── Daily check-in ──


@router.post("/daily/checkin", response_model=CheckinResponse)
async def submit_checkin(
    body: CheckinRequest,
    engine: TransitionEngine = Depends(get_engine),  # noqa: B008
) -> CheckinResponse:
    """Evaluate a daily check-in and update the student's status."""
    result = await engine.submit_checkin(
        body.student_id,
        focus_minutes=body.focus_minutes,
        quiz_score=body.quiz_score,
        page_visibility_events=body.page_visibility_events,
        cheater_detected=body.cheater_detected,
    )
    return CheckinResponse(
        status=result.status,
        message=result.message,
        log_id=result.log_id,
        is_success=result.is_success,
        reasons=list(result.reasons),
    )


@router.post("/daily/cheat-signal", response_model=CheatSignalResponse)
async def report_cheat_signal(
    body: CheatSignalRequest,
    ingest: CheatSignalIngest = Depends(get_cheat_ingest),  # noqa: B008
) -> CheatSignalResponse:
    """Record a tab-switch / hidden-window signal against the latest check-in."""
    result = await ingest.report(body.student_id, body.reason)
    return CheatSignalResponse(accepted=result.accepted)


@router.post("/daily/cheat-signal/batch", response_model=CheatSignalBatchResponse)
async def report_cheat_signals(
    body: CheatSignalBatchRequest,
    ingest: CheatSignalIngest = Depends(get_cheat_ingest),  # noqa: B008
) -> CheatSignalBatchResponse:
    """Record several cheat signals in one request."""
    result = await ingest.report_many([(event.student_id, event.reason) for event in body.events])
    return CheatSignalBatchResponse(total=result.total, accepted=result.accepted, rejected=result.rejected)


# ── Interventions ──


@router.post("/interventions/assign", response_model=AssignInterventionResponse, status_code=201)
async def assign_intervention(
    body: AssignInterventionRequest,
    engine: TransitionEngine = Depends(get_engine),  # noqa: B008
) -> AssignInterventionResponse:
    """Assign a remedial task to a student."""
    result = await engine.assign_intervention(body.student_id, body.task, body.mentor_notes)
    return AssignInterventionResponse(
        intervention_id=result.intervention_id,
        student_id=result.student_id,
        task=result.task,
        status=result.status,
        assigned_at=result.assigned_at,
    )


@router.post("/interventions/complete", response_model=CompleteInterventionResponse)
async def complete_intervention(
    body: CompleteInterventionRequest,
    engine: TransitionEngine = Depends(get_engine),  # noqa: B008
) -> CompleteInterventionResponse:
    """Mark an intervention completed and unlock the student."""
    result = await engine.complete_intervention(body.student_id, body.intervention_id)
    return CompleteInterventionResponse(
        student_id=result.student_id,
        intervention_id=result.intervention_id,
        status=result.status,
        completed_at=result.completed_at,
        unlocked_at=result.unlocked_at,
    )


# ── Status ──


@router.get("/student/{student_id}", response_model=StudentStatusResponse)
async def get_student_status(
    student_id: str,
    engine: TransitionEngine = Depends(get_engine),  # noqa: B008
) -> StudentStatusResponse:
    """Current status and latest intervention of a student."""
    snapshot = await engine.get_status(student_id)
    return StudentStatusResponse.model_validate(snapshot)
