from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import FrozenSet, Optional, Sequence, Tuple


@dataclass(frozen=True)
class AttendanceRecord:
    """Entidad de dominio: registro de asistencia de una inscripción en una fecha.

    ``(enrollment_id, session_date)`` is the identity; only ``attended`` and
    ``notes`` change after creation.
    """

    enrollment_id: int
    group_id: int
    session_date: date
    attended: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    attendance_id: Optional[int] = None

    @property
    def key(self) -> Tuple[int, date]:
        return (self.enrollment_id, self.session_date)

    def has_marks(self, *, attended: bool, notes: Optional[str]) -> bool:
        return self.attended == bool(attended) and self.notes == notes

    def amend(self, *, attended: bool, notes: Optional[str], now: datetime) -> "AttendanceRecord":
        """Return the amended record; an identical mark leaves the record (and updated_at) as is."""
        if self.has_marks(attended=attended, notes=notes):
            return self
        return replace(self, attended=bool(attended), notes=notes, updated_at=now)


@dataclass(frozen=True)
class AttendanceEntry:
    """One row of a submitted batch."""

    enrollment_id: int
    attended: bool
    notes: Optional[str] = None


@dataclass(frozen=True)
class BatchOutcome:
    """Result of applying one batch: every record now stored for (group, date)."""

    records: Sequence[AttendanceRecord]
    created: int = 0
    amended: int = 0
    unchanged: int = 0


@dataclass(frozen=True)
class DateRange:
    """Inclusive range; an open end means unbounded."""

    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, value: date) -> bool:
        if self.start and value < self.start:
            return False
        if self.end and value > self.end:
            return False
        return True


@dataclass(frozen=True)
class RecordQuery:
    """Store-level criteria; ``None`` means "no restriction"."""

    group_ids: Optional[FrozenSet[int]] = None
    enrollment_ids: Optional[FrozenSet[int]] = None
    date_range: DateRange = field(default_factory=DateRange)

    @property
    def matches_nothing(self) -> bool:
        return self.group_ids == frozenset() or self.enrollment_ids == frozenset()

    def matches(self, record: AttendanceRecord) -> bool:
        if self.group_ids is not None and record.group_id not in self.group_ids:
            return False
        if self.enrollment_ids is not None and record.enrollment_id not in self.enrollment_ids:
            return False
        return self.date_range.contains(record.session_date)


@dataclass(frozen=True)
class AttendanceFilters:
    """Caller-level filters as offered by the attendance screens."""

    group_id: Optional[int] = None
    parish_id: Optional[int] = None
    level_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=self.start_date, end=self.end_date)

    @property
    def cache_key(self) -> tuple:
        return (self.group_id, self.parish_id, self.level_id, self.start_date, self.end_date)
