from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ..core.enums import AttendanceClassification, Trend


@dataclass(frozen=True)
class LearnerAttendanceSummary:
    """Resumen de asistencia de una inscripción (derivado, nunca persistido)."""

    enrollment_id: int
    total_sessions: int
    attended_count: int
    absent_count: int
    percentage: float
    last_attended_date: Optional[date]
    classification: AttendanceClassification
    at_risk: bool = False

    @property
    def insufficient_data(self) -> bool:
        return self.classification == AttendanceClassification.INSUFFICIENT_DATA


@dataclass(frozen=True)
class LearnerSummaryRow:
    """Summary joined with learner identity, as listed and exported."""

    summary: LearnerAttendanceSummary
    learner_name: str
    learner_surname: str
    document_id: str
    group_id: Optional[int]
    group_label: str


@dataclass(frozen=True)
class SummaryDistribution:
    """How many learners fall in each category, plus the mean over learners with data."""

    total_learners: int
    average_percentage: float
    excellent: int
    good: int
    regular: int
    deficient: int
    insufficient_data: int


@dataclass(frozen=True)
class GroupSummary:
    group_id: int
    rows: Sequence[LearnerSummaryRow]
    distribution: SummaryDistribution


@dataclass(frozen=True)
class GroupSnapshot:
    session_date: Optional[date]
    present: int
    absent: int
    total: int
    percentage: float


@dataclass(frozen=True)
class TrendPoint:
    session_date: date
    percentage: float


@dataclass(frozen=True)
class OverallStatistics:
    total_sessions: int
    total_learners: int
    average_percentage: float
    best_percentage: float
    worst_percentage: float
    trend: Trend
    at_risk_count: int

    @property
    def insufficient_data(self) -> bool:
        return self.total_learners == 0


@dataclass(frozen=True)
class GroupBreakdown:
    group_id: int
    group_label: str
    total_learners: int
    average_percentage: float
    sessions_held: int


@dataclass(frozen=True)
class GroupStatistics:
    group_id: int
    snapshot_series: Sequence[GroupSnapshot]
    overall: OverallStatistics


@dataclass(frozen=True)
class GeneralStatistics:
    """Everything the statistics screen shows, from one record query."""

    by_date: Sequence[GroupSnapshot]
    by_group: Sequence[GroupBreakdown]
    overall: OverallStatistics
    at_risk: Sequence[LearnerSummaryRow]
