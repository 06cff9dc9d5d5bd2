"""Typed error hierarchy for the prediction engine.

Every engine component raises one of these. The service facade catches
ForesightError and converts it to a failed ServiceResult carrying the
matching ErrorKind, so callers never see a partial state change paired
with an error.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Classification of failures reported to callers."""
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    UNAUTHORIZED = "unauthorized"
    INVALID_STATE = "invalid_state"
    DEADLINE_VIOLATION = "deadline_violation"
    COMMITMENT_MISMATCH = "commitment_mismatch"


class ForesightError(Exception):
    """Base class for all engine errors."""
    kind: ErrorKind


class ValidationError(ForesightError, ValueError):
    """Malformed input: blank text, out-of-range duration, null identity."""
    kind = ErrorKind.VALIDATION


class NotFound(ForesightError, LookupError):
    """Unknown event, or no commitment for the given principal."""
    kind = ErrorKind.NOT_FOUND


class AlreadyExists(ForesightError):
    """Duplicate commitment for a (event, principal) pair."""
    kind = ErrorKind.ALREADY_EXISTS


class Unauthorized(ForesightError):
    """Caller lacks the role required for the operation."""
    kind = ErrorKind.UNAUTHORIZED


class InvalidState(ForesightError):
    """Operation attempted in a lifecycle phase that forbids it."""
    kind = ErrorKind.INVALID_STATE


class DeadlineViolation(ForesightError):
    """Finalize before the deadline, or commit after the window closed."""
    kind = ErrorKind.DEADLINE_VIOLATION


class CommitmentMismatch(ForesightError):
    """Revealed value does not reproduce the stored digest."""
    kind = ErrorKind.COMMITMENT_MISMATCH


__all__ = [
    "ErrorKind",
    "ForesightError",
    "ValidationError",
    "NotFound",
    "AlreadyExists",
    "Unauthorized",
    "InvalidState",
    "DeadlineViolation",
    "CommitmentMismatch",
]
