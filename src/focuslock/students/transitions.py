"""Student status state machine.

States: on_track, needs_intervention, remedial.
Events: checkin_success, checkin_failure, assign, complete.

Check-ins are authoritative by default: they re-evaluate the student from
any state, including remedial. The alternative table keeps remedial students
remedial until their task is completed.
"""

from __future__ import annotations

from focuslock.errors import ConflictError

ON_TRACK = "on_track"
NEEDS_INTERVENTION = "needs_intervention"
REMEDIAL = "remedial"

STATUSES = (ON_TRACK, NEEDS_INTERVENTION, REMEDIAL)

CHECKIN_SUCCESS = "checkin_success"
CHECKIN_FAILURE = "checkin_failure"
ASSIGN = "assign"
COMPLETE = "complete"

# event -> {current status -> next status}
CHECKIN_OVERRIDE_TRANSITIONS: dict[str, dict[str, str]] = {
    CHECKIN_SUCCESS: {
        ON_TRACK: ON_TRACK,
        NEEDS_INTERVENTION: ON_TRACK,
        REMEDIAL: ON_TRACK,
    },
    CHECKIN_FAILURE: {
        ON_TRACK: NEEDS_INTERVENTION,
        NEEDS_INTERVENTION: NEEDS_INTERVENTION,
        REMEDIAL: NEEDS_INTERVENTION,
    },
    ASSIGN: {
        ON_TRACK: REMEDIAL,
        NEEDS_INTERVENTION: REMEDIAL,
        REMEDIAL: REMEDIAL,
    },
    COMPLETE: {
        ON_TRACK: ON_TRACK,
        NEEDS_INTERVENTION: ON_TRACK,
        REMEDIAL: ON_TRACK,
    },
}

REMEDIAL_HOLD_TRANSITIONS: dict[str, dict[str, str]] = {
    **CHECKIN_OVERRIDE_TRANSITIONS,
    CHECKIN_SUCCESS: {**CHECKIN_OVERRIDE_TRANSITIONS[CHECKIN_SUCCESS], REMEDIAL: REMEDIAL},
    CHECKIN_FAILURE: {**CHECKIN_OVERRIDE_TRANSITIONS[CHECKIN_FAILURE], REMEDIAL: REMEDIAL},
}


def transition_table(checkin_overrides_remedial: bool) -> dict[str, dict[str, str]]:
    """Pick the table for the configured check-in policy."""
    return CHECKIN_OVERRIDE_TRANSITIONS if checkin_overrides_remedial else REMEDIAL_HOLD_TRANSITIONS


def next_status(table: dict[str, dict[str, str]], current_status: str, event: str) -> str:
    """Resolve the target status. Raises ConflictError if the event is not legal here."""
    target = table.get(event, {}).get(current_status)
    if target is None:
        raise ConflictError(f"Invalid transition: {event} from {current_status}")
    return target
