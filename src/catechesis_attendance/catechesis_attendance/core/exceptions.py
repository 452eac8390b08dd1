from __future__ import annotations

from typing import Iterable, Optional

from .enums import ErrorKind


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind: ErrorKind = ErrorKind.VALIDATION


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidDateError(ValidationError):
    """Raised when a session date falls outside the registration window."""

    kind = ErrorKind.INVALID_DATE

    def __init__(self, message: str, *, reason: str):
        super().__init__(message)
        self.reason = reason


class RosterMismatchError(ValidationError):
    """Raised when a batch references enrollments outside the target group."""

    kind = ErrorKind.ROSTER_MISMATCH

    def __init__(self, *, group_id: int, enrollment_ids: Iterable[int]):
        self.group_id = int(group_id)
        self.enrollment_ids = tuple(sorted(set(enrollment_ids)))
        ids = ", ".join(str(i) for i in self.enrollment_ids)
        super().__init__(f"Las inscripciones {ids} no pertenecen al grupo {self.group_id}")


class NotFoundError(DomainError):
    """Raised when an attendance record id does not exist."""

    kind = ErrorKind.NOT_FOUND


class StoreConflictError(DomainError):
    """Raised when a concurrent batch holds the same (group, date); retry the whole batch."""

    kind = ErrorKind.STORE_CONFLICT


class StoreUnavailableError(DomainError):
    """Raised when the persistence layer cannot be reached."""

    kind = ErrorKind.STORE_UNAVAILABLE

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail
