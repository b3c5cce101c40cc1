"""Daily check-in evaluation rule.

A check-in is a success only if the quiz score is above 7, focus time is
above 60 minutes, and no cheating was detected. Both thresholds are strict,
so the boundary values themselves fail.
"""

from __future__ import annotations

from dataclasses import dataclass

QUIZ_THRESHOLD = 7
FOCUS_THRESHOLD = 60

REASON_LOW_FOCUS = "low_focus"
REASON_LOW_QUIZ_SCORE = "low_quiz_score"
REASON_CHEAT_FLAG = "cheat_flag"


@dataclass(frozen=True)
class Evaluation:
    is_success: bool
    reasons: tuple[str, ...] = ()


def evaluate(focus_minutes: float, quiz_score: float, cheater_detected: bool) -> Evaluation:
    """Score a check-in. ``reasons`` lists every failed predicate in fixed order."""
    reasons: list[str] = []
    if not focus_minutes > FOCUS_THRESHOLD:
        reasons.append(REASON_LOW_FOCUS)
    if not quiz_score > QUIZ_THRESHOLD:
        reasons.append(REASON_LOW_QUIZ_SCORE)
    if cheater_detected:
        reasons.append(REASON_CHEAT_FLAG)
    return Evaluation(is_success=not reasons, reasons=tuple(reasons))


def describe_reasons(evaluation: Evaluation, focus_minutes: float, quiz_score: float) -> str:
    """Human-readable failure summary for mentors."""
    parts: list[str] = []
    for reason in evaluation.reasons:
        if reason == REASON_LOW_FOCUS:
            parts.append(f"Low focus time: {focus_minutes:g} minutes (needed > {FOCUS_THRESHOLD})")
        elif reason == REASON_LOW_QUIZ_SCORE:
            parts.append(f"Low quiz score: {quiz_score:g} (needed > {QUIZ_THRESHOLD})")
        elif reason == REASON_CHEAT_FLAG:
            parts.append("Cheater detection triggered (tab switch / hidden window)")
    return "; ".join(parts)
