"""Domain error taxonomy.

Every error carries the HTTP status the API layer reports it with, so the
transition engine can raise them without knowing about FastAPI.
"""

from __future__ import annotations


class FocusLockError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(FocusLockError):
    """Missing or malformed input, rejected before touching the status store."""

    status_code = 400


class NotFoundError(FocusLockError):
    """Unknown student or intervention, or an intervention owned by another student."""

    status_code = 404


class ConflictError(FocusLockError):
    """The event is not legal in the current state (e.g. completing twice)."""

    status_code = 409


class DependencyError(FocusLockError):
    """Persistence or webhook endpoint unreachable."""

    status_code = 503
