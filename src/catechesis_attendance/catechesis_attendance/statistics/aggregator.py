"""Pure rollups over attendance records.

Nothing here reads the store: callers pass the records they fetched, so one
result is always computed from one consistent read.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date
from typing import Dict, Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord, DateRange
from ..common.percentages import attendance_percentage, mean_percentage
from ..core.constants import AT_RISK_THRESHOLD
from ..core.enums import AttendanceClassification, Trend
from .model import (
    GroupBreakdown,
    GroupSnapshot,
    LearnerAttendanceSummary,
    OverallStatistics,
    SummaryDistribution,
    TrendPoint,
)
from .risk import RiskClassifier

_default_classifier = RiskClassifier()


def learner_summary(
    records: Sequence[AttendanceRecord],
    *,
    enrollment_id: Optional[int] = None,
    classifier: Optional[RiskClassifier] = None,
) -> LearnerAttendanceSummary:
    """Summarize the records of a single enrollment.

    With no records the summary is marked insufficient data rather than
    deficient; ``enrollment_id`` is then required.
    """

    classifier = classifier or _default_classifier
    ids = {r.enrollment_id for r in records}
    if len(ids) > 1:
        raise ValueError(f"records span several enrollments: {sorted(ids)}")
    if enrollment_id is None:
        if not ids:
            raise ValueError("enrollment_id is required for an empty record set")
        enrollment_id = ids.pop()
    elif ids and ids != {int(enrollment_id)}:
        raise ValueError(f"records do not belong to enrollment {enrollment_id}")

    total = len(records)
    attended = sum(1 for r in records if r.attended)
    percentage = attendance_percentage(attended, total)
    attended_dates = [r.session_date for r in records if r.attended]

    if total == 0:
        classification = AttendanceClassification.INSUFFICIENT_DATA
        at_risk = False
    else:
        classification = classifier.classify(percentage)
        at_risk = classifier.is_at_risk(percentage)

    return LearnerAttendanceSummary(
        enrollment_id=int(enrollment_id),
        total_sessions=total,
        attended_count=attended,
        absent_count=total - attended,
        percentage=percentage,
        last_attended_date=max(attended_dates) if attended_dates else None,
        classification=classification,
        at_risk=at_risk,
    )


def summarize_by_enrollment(
    records: Iterable[AttendanceRecord],
    *,
    classifier: Optional[RiskClassifier] = None,
) -> Dict[int, LearnerAttendanceSummary]:
    grouped: Dict[int, list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        grouped[r.enrollment_id].append(r)
    return {eid: learner_summary(rs, enrollment_id=eid, classifier=classifier) for eid, rs in grouped.items()}


def summary_distribution(summaries: Iterable[LearnerAttendanceSummary]) -> SummaryDistribution:
    summaries = list(summaries)
    counts = Counter(s.classification for s in summaries)
    return SummaryDistribution(
        total_learners=len(summaries),
        average_percentage=mean_percentage(s.percentage for s in summaries if not s.insufficient_data),
        excellent=counts[AttendanceClassification.EXCELLENT],
        good=counts[AttendanceClassification.GOOD],
        regular=counts[AttendanceClassification.REGULAR],
        deficient=counts[AttendanceClassification.DEFICIENT],
        insufficient_data=counts[AttendanceClassification.INSUFFICIENT_DATA],
    )


def _snapshot(session_date: Optional[date], records: Sequence[AttendanceRecord]) -> GroupSnapshot:
    total = len(records)
    present = sum(1 for r in records if r.attended)
    return GroupSnapshot(
        session_date=session_date,
        present=present,
        absent=total - present,
        total=total,
        percentage=attendance_percentage(present, total),
    )


def group_snapshot_by_date(group_id: int, session_date: date, records: Iterable[AttendanceRecord]) -> GroupSnapshot:
    selected = [r for r in records if r.group_id == int(group_id) and r.session_date == session_date]
    return _snapshot(session_date, selected)


def snapshot_series(records: Iterable[AttendanceRecord]) -> list[GroupSnapshot]:
    """One snapshot per distinct session date, ascending; dates without records are absent."""

    by_date: Dict[date, list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        by_date[r.session_date].append(r)
    return [_snapshot(d, by_date[d]) for d in sorted(by_date)]


def group_trend(group_id: int, date_range: Optional[DateRange], records: Iterable[AttendanceRecord]) -> list[TrendPoint]:
    date_range = date_range or DateRange()
    selected = [r for r in records if r.group_id == int(group_id) and date_range.contains(r.session_date)]
    return [TrendPoint(session_date=s.session_date, percentage=s.percentage) for s in snapshot_series(selected)]


def compute_trend(percentages: Sequence[float]) -> Trend:
    """Compare the mean of the most recent half of the series with the earlier half.

    With an odd length the middle point belongs to neither half.
    """

    half = len(percentages) // 2
    if half == 0:
        return Trend.STABLE
    earlier = mean_percentage(percentages[:half])
    recent = mean_percentage(percentages[-half:])
    if recent > earlier:
        return Trend.UP
    if recent < earlier:
        return Trend.DOWN
    return Trend.STABLE


def overall_statistics(
    records: Sequence[AttendanceRecord],
    *,
    classifier: Optional[RiskClassifier] = None,
    at_risk_threshold: Optional[float] = None,
) -> OverallStatistics:
    """Average, best and worst are taken over per-learner percentages."""

    classifier = classifier or _default_classifier
    summaries = list(summarize_by_enrollment(records, classifier=classifier).values())
    series = snapshot_series(records)

    if not summaries:
        return OverallStatistics(
            total_sessions=0,
            total_learners=0,
            average_percentage=0.0,
            best_percentage=0.0,
            worst_percentage=0.0,
            trend=Trend.STABLE,
            at_risk_count=0,
        )

    percentages = [s.percentage for s in summaries]
    threshold = AT_RISK_THRESHOLD if at_risk_threshold is None else at_risk_threshold
    at_risk = sum(1 for p in percentages if classifier.is_at_risk(p, threshold))

    return OverallStatistics(
        total_sessions=len(series),
        total_learners=len(summaries),
        average_percentage=mean_percentage(percentages),
        best_percentage=max(percentages),
        worst_percentage=min(percentages),
        trend=compute_trend([s.percentage for s in series]),
        at_risk_count=at_risk,
    )


def group_breakdown(
    records: Iterable[AttendanceRecord],
    *,
    group_labels: Mapping[int, str],
    classifier: Optional[RiskClassifier] = None,
) -> list[GroupBreakdown]:
    by_group: Dict[int, list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        by_group[r.group_id].append(r)

    out = []
    for gid in sorted(by_group):
        group_records = by_group[gid]
        summaries = summarize_by_enrollment(group_records, classifier=classifier)
        out.append(
            GroupBreakdown(
                group_id=gid,
                group_label=group_labels.get(gid, f"Grupo {gid}"),
                total_learners=len(summaries),
                average_percentage=mean_percentage(s.percentage for s in summaries.values()),
                sessions_held=len({r.session_date for r in group_records}),
            )
        )
    return out
