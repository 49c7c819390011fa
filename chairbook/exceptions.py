"""Domain errors raised by the scheduling services.

Every error carries a machine-readable ``reason`` and the HTTP status the API
layer answers with, so routers never translate errors by hand.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base exception for caller-resolvable scheduling failures."""

    reason = "SchedulingError"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "reason": self.reason, "details": self.details}


class ValidationError(SchedulingError):
    """Malformed input: missing fields, inverted intervals, out-of-range counts."""

    reason = "ValidationError"
    status_code = 400


class NotFoundError(SchedulingError):
    """A referenced client, service or appointment does not exist."""

    reason = "NotFoundError"
    status_code = 404


class ConflictError(SchedulingError):
    """A candidate interval overlaps an active appointment."""

    reason = "ConflictError"
    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        conflicting_ids: Optional[list[str]] = None,
        occurrence_start: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if conflicting_ids:
            details["conflictingIds"] = conflicting_ids
        if occurrence_start:
            details["occurrenceStart"] = occurrence_start
        super().__init__(message, details=details)
        self.conflicting_ids = conflicting_ids or []
        self.occurrence_start = occurrence_start


class InUseError(ConflictError):
    """A client or service cannot be deleted while appointments reference it."""

    reason = "InUseError"


class StoreError(SchedulingError):
    """Unexpected persistence failure; the transaction was rolled back."""

    reason = "StoreError"
    status_code = 500
