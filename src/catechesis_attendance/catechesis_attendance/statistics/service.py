from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

from ..attendance.model import AttendanceFilters, AttendanceRecord, DateRange, RecordQuery
from ..attendance.repository import AttendanceRecordStore
from ..common.validators import require_date_range, require_percentage, require_positive_id
from ..core.constants import AT_RISK_THRESHOLD
from ..roster.model import Group
from ..roster.repository import GroupDirectory, RosterProvider
from . import aggregator
from .cache import FILTERS_TAG, StatisticsCache, enrollment_tag, group_tag
from .model import GeneralStatistics, GroupStatistics, GroupSummary, LearnerAttendanceSummary, LearnerSummaryRow
from .risk import RiskClassifier


class StatisticsService:
    """Read side: summaries, group statistics, risk listings.

    Each public call performs one store read and computes its whole result from
    it, so a caller gets one coherent answer or one error.
    """

    def __init__(
        self,
        attendance: AttendanceRecordStore,
        roster: RosterProvider,
        groups: GroupDirectory,
        *,
        cache: Optional[StatisticsCache] = None,
        classifier: Optional[RiskClassifier] = None,
    ):
        self._attendance = attendance
        self._roster = roster
        self._groups = groups
        self._cache = cache or StatisticsCache(ttl_seconds=0)
        self._classifier = classifier or RiskClassifier()

    def get_learner_summary(self, enrollment_id: int, date_range: Optional[DateRange] = None) -> LearnerAttendanceSummary:
        enrollment_id = require_positive_id(enrollment_id, "Inscripción")
        date_range = date_range or DateRange()
        require_date_range(date_range.start, date_range.end)

        def compute() -> LearnerAttendanceSummary:
            records = [r for r in self._attendance.get_by_enrollment(enrollment_id) if date_range.contains(r.session_date)]
            return aggregator.learner_summary(records, enrollment_id=enrollment_id, classifier=self._classifier)

        return self._cache.get_or_compute(
            ("learner", enrollment_id, date_range.start, date_range.end),
            compute,
            tags=[enrollment_tag(enrollment_id)],
        )

    def get_group_statistics(self, group_id: int, period: Optional[DateRange] = None) -> GroupStatistics:
        group_id = require_positive_id(group_id, "Grupo")
        period = period or DateRange()
        require_date_range(period.start, period.end)

        def compute() -> GroupStatistics:
            records = list(self._attendance.query_by_filter(RecordQuery(group_ids=frozenset({group_id}), date_range=period)))
            return GroupStatistics(
                group_id=group_id,
                snapshot_series=aggregator.snapshot_series(records),
                overall=aggregator.overall_statistics(records, classifier=self._classifier),
            )

        return self._cache.get_or_compute(("group", group_id, period.start, period.end), compute, tags=[group_tag(group_id)])

    def get_group_summary(self, group_id: int, date_range: Optional[DateRange] = None) -> GroupSummary:
        """Per-learner summaries for the whole roster plus their category counts.

        Learners without records show insufficient data and are left out of
        the average.
        """

        group_id = require_positive_id(group_id, "Grupo")
        date_range = date_range or DateRange()
        require_date_range(date_range.start, date_range.end)

        def compute() -> GroupSummary:
            records = list(self._attendance.query_by_filter(RecordQuery(group_ids=frozenset({group_id}), date_range=date_range)))
            summaries = aggregator.summarize_by_enrollment(records, classifier=self._classifier)
            roster = list(self._roster.list_for_group(group_id))
            for en in roster:
                if en.enrollment_id not in summaries:
                    summaries[en.enrollment_id] = aggregator.learner_summary(
                        [], enrollment_id=en.enrollment_id, classifier=self._classifier
                    )
            return GroupSummary(
                group_id=group_id,
                rows=self._join_identity(summaries.values(), records, known=roster),
                distribution=aggregator.summary_distribution(summaries.values()),
            )

        return self._cache.get_or_compute(
            ("group_summary", group_id, date_range.start, date_range.end),
            compute,
            tags=[group_tag(group_id)],
        )

    def get_at_risk_learners(
        self,
        threshold: float = AT_RISK_THRESHOLD,
        filters: Optional[AttendanceFilters] = None,
    ) -> list[LearnerSummaryRow]:
        threshold = require_percentage(threshold, "Porcentaje mínimo")
        filters = filters or AttendanceFilters()

        def compute() -> list[LearnerSummaryRow]:
            records = self._query(filters)
            return self._at_risk_rows(records, threshold)

        return self._cache.get_or_compute(("at_risk", threshold, filters.cache_key), compute, tags=[FILTERS_TAG])

    def get_summary_rows(self, filters: Optional[AttendanceFilters] = None) -> list[LearnerSummaryRow]:
        """Per-learner summaries for every enrollment with records matching the filters."""

        filters = filters or AttendanceFilters()

        def compute() -> list[LearnerSummaryRow]:
            records = self._query(filters)
            summaries = aggregator.summarize_by_enrollment(records, classifier=self._classifier)
            return self._join_identity(summaries.values(), records)

        return self._cache.get_or_compute(("summary_rows", filters.cache_key), compute, tags=[FILTERS_TAG])

    def get_general_statistics(self, filters: Optional[AttendanceFilters] = None) -> GeneralStatistics:
        filters = filters or AttendanceFilters()

        def compute() -> GeneralStatistics:
            records = self._query(filters)
            seen: Dict[int, Optional[Group]] = {}
            labels = {gid: self._group_label(gid, seen) for gid in {r.group_id for r in records}}
            return GeneralStatistics(
                by_date=aggregator.snapshot_series(records),
                by_group=aggregator.group_breakdown(records, group_labels=labels, classifier=self._classifier),
                overall=aggregator.overall_statistics(records, classifier=self._classifier),
                at_risk=self._at_risk_rows(records, AT_RISK_THRESHOLD),
            )

        return self._cache.get_or_compute(("general", filters.cache_key), compute, tags=[FILTERS_TAG])

    def resolve_query(self, filters: AttendanceFilters) -> RecordQuery:
        """Turn screen filters into store criteria; parish and level go through the group directory."""

        require_date_range(filters.start_date, filters.end_date)

        group_ids = None
        if filters.parish_id is not None or filters.level_id is not None:
            groups = self._groups.list_groups(parish_id=filters.parish_id, level_id=filters.level_id)
            group_ids = frozenset(g.group_id for g in groups)
        if filters.group_id is not None:
            selected = frozenset({int(filters.group_id)})
            group_ids = selected if group_ids is None else group_ids & selected

        return RecordQuery(group_ids=group_ids, date_range=filters.date_range)

    def _query(self, filters: AttendanceFilters) -> list[AttendanceRecord]:
        return list(self._attendance.query_by_filter(self.resolve_query(filters)))

    def _at_risk_rows(self, records: Sequence[AttendanceRecord], threshold: float) -> list[LearnerSummaryRow]:
        summaries = aggregator.summarize_by_enrollment(records, classifier=self._classifier)
        at_risk = [
            s for s in summaries.values() if not s.insufficient_data and self._classifier.is_at_risk(s.percentage, threshold)
        ]
        rows = self._join_identity(at_risk, records)
        rows.sort(key=lambda r: (r.summary.percentage, r.learner_surname, r.learner_name))
        return rows

    def _group_label(self, group_id: int, seen: Dict[int, Optional[Group]]) -> str:
        if group_id not in seen:
            seen[group_id] = self._groups.get_by_id(group_id)
        group = seen[group_id]
        return group.label if group else f"Grupo {group_id}"

    def _join_identity(
        self,
        summaries: Iterable[LearnerAttendanceSummary],
        records: Sequence[AttendanceRecord],
        *,
        known=None,
    ) -> list[LearnerSummaryRow]:
        summaries = list(summaries)
        group_of = {r.enrollment_id: r.group_id for r in records}

        if known is None:
            known = self._roster.get_many([s.enrollment_id for s in summaries]) if summaries else []
        enrollments = {en.enrollment_id: en for en in known}

        groups: Dict[int, Optional[Group]] = {}
        rows = []
        for s in summaries:
            en = enrollments.get(s.enrollment_id)
            group_id = en.group_id if en else group_of.get(s.enrollment_id)
            rows.append(
                LearnerSummaryRow(
                    summary=s,
                    learner_name=en.learner_name if en else "",
                    learner_surname=en.learner_surname if en else "",
                    document_id=en.document_id if en else "",
                    group_id=group_id,
                    group_label=self._group_label(group_id, groups) if group_id is not None else "",
                )
            )
        rows.sort(key=lambda r: (r.learner_surname, r.learner_name, r.summary.enrollment_id))
        return rows
