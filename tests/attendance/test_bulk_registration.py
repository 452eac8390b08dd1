from __future__ import annotations

from datetime import date, timedelta

import pytest

from catechesis_attendance.attendance.model import AttendanceEntry
from catechesis_attendance.attendance.service import AttendanceService
from catechesis_attendance.core.enums import ErrorKind
from catechesis_attendance.core.exceptions import (
    InvalidDateError,
    NotFoundError,
    RosterMismatchError,
    StoreConflictError,
    StoreUnavailableError,
    ValidationError,
)
from catechesis_attendance.statistics.aggregator import group_snapshot_by_date

SESSION_DATE = date(2024, 2, 19)


def first_batch():
    return [
        AttendanceEntry(1, True),
        AttendanceEntry(2, False, "Enfermo"),
        AttendanceEntry(3, True),
    ]


class FlakyStore:
    """Delegates to a real store after raising ``error`` for the first ``failures`` batches."""

    def __init__(self, inner, *, error, failures: int):
        self._inner = inner
        self._error = error
        self._failures = failures
        self.batch_calls = 0

    def upsert_batch(self, **kwargs):
        self.batch_calls += 1
        if self.batch_calls <= self._failures:
            raise self._error
        return self._inner.upsert_batch(**kwargs)

    def __getattr__(self, name):
        return getattr(self._inner, name)


def test_batch_produces_expected_snapshot(store, roster, fixed_now):
    svc = AttendanceService(store, roster)

    records = svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)

    snapshot = group_snapshot_by_date(1, SESSION_DATE, records)
    assert (snapshot.present, snapshot.absent, snapshot.total) == (2, 1, 3)
    assert snapshot.percentage == 66.67


def test_resubmission_amends_without_duplicates(store, roster, fixed_now):
    svc = AttendanceService(store, roster)
    svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)

    records = svc.register_bulk(
        1,
        SESSION_DATE,
        [AttendanceEntry(1, True), AttendanceEntry(2, True), AttendanceEntry(3, True)],
        now=fixed_now + timedelta(minutes=5),
    )

    assert len(store.get_by_group_and_date(1, SESSION_DATE)) == 3
    assert len(records) == 3
    assert group_snapshot_by_date(1, SESSION_DATE, records).percentage == 100.0


def test_same_batch_twice_leaves_identical_state(store, roster, fixed_now):
    svc = AttendanceService(store, roster)

    svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)
    before = list(store.get_by_group_and_date(1, SESSION_DATE))
    svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now + timedelta(hours=1))
    after = list(store.get_by_group_and_date(1, SESSION_DATE))

    assert before == after


def test_amendment_keeps_identity_and_refreshes_updated_at(store, roster, fixed_now):
    svc = AttendanceService(store, roster)
    svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)
    original = {r.enrollment_id: r for r in store.get_by_group_and_date(1, SESSION_DATE)}

    later = fixed_now + timedelta(minutes=30)
    svc.register_bulk(1, SESSION_DATE, [AttendanceEntry(2, True)], now=later)
    amended = {r.enrollment_id: r for r in store.get_by_group_and_date(1, SESSION_DATE)}

    assert amended[2].attended is True
    assert amended[2].notes is None
    assert amended[2].attendance_id == original[2].attendance_id
    assert amended[2].created_at == fixed_now
    assert amended[2].updated_at == later
    assert amended[1] == original[1]


def test_omitted_entries_are_not_marked_absent(store, roster, fixed_now):
    svc = AttendanceService(store, roster)

    records = svc.register_bulk(1, SESSION_DATE, [AttendanceEntry(1, True)], now=fixed_now)

    assert [r.enrollment_id for r in records] == [1]
    assert store.get_by_enrollment(2) == []


def test_roster_mismatch_rejects_whole_batch(store, roster, fixed_now):
    svc = AttendanceService(store, roster)

    with pytest.raises(RosterMismatchError) as exc_info:
        svc.register_bulk(1, SESSION_DATE, [AttendanceEntry(1, True), AttendanceEntry(4, True)], now=fixed_now)

    assert exc_info.value.kind == ErrorKind.ROSTER_MISMATCH
    assert exc_info.value.enrollment_ids == (4,)
    assert store.get_by_group_and_date(1, SESSION_DATE) == []


def test_invalid_date_rejected_before_any_read_or_write(store, roster, fixed_now):
    svc = AttendanceService(store, roster)

    with pytest.raises(InvalidDateError):
        svc.register_bulk(1, SESSION_DATE + timedelta(days=1), first_batch(), now=fixed_now)

    assert roster.calls == 0
    assert store.list_session_dates(1) == []


def test_duplicate_enrollment_in_batch_is_rejected(store, roster, fixed_now):
    svc = AttendanceService(store, roster)

    with pytest.raises(ValidationError):
        svc.register_bulk(1, SESSION_DATE, [AttendanceEntry(1, True), AttendanceEntry(1, False)], now=fixed_now)


def test_empty_batch_is_rejected(store, roster, fixed_now):
    with pytest.raises(ValidationError):
        AttendanceService(store, roster).register_bulk(1, SESSION_DATE, [], now=fixed_now)


def test_non_boolean_mark_is_rejected(store, roster, fixed_now):
    with pytest.raises(ValidationError):
        AttendanceService(store, roster).register_bulk(1, SESSION_DATE, [AttendanceEntry(1, "si")], now=fixed_now)


def test_blank_notes_are_stored_as_none(store, roster, fixed_now):
    records = AttendanceService(store, roster).register_bulk(
        1, SESSION_DATE, [AttendanceEntry(1, False, "   ")], now=fixed_now
    )

    assert records[0].notes is None


def test_conflict_is_retried_once(store, roster, fixed_now):
    flaky = FlakyStore(store, error=StoreConflictError("ocupado"), failures=1)
    svc = AttendanceService(flaky, roster)

    records = svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)

    assert flaky.batch_calls == 2
    assert len(records) == 3


def test_conflict_surfaces_after_one_retry(store, roster, fixed_now):
    flaky = FlakyStore(store, error=StoreConflictError("ocupado"), failures=5)
    svc = AttendanceService(flaky, roster)

    with pytest.raises(StoreConflictError):
        svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)

    assert flaky.batch_calls == 2


def test_unavailable_store_is_not_retried(store, roster, fixed_now):
    flaky = FlakyStore(store, error=StoreUnavailableError("No se pudo cargar", detail="timeout"), failures=5)
    svc = AttendanceService(flaky, roster)

    with pytest.raises(StoreUnavailableError) as exc_info:
        svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)

    assert flaky.batch_calls == 1
    assert exc_info.value.detail == "timeout"


def test_register_individual_resolves_group_from_roster(store, roster, fixed_now):
    svc = AttendanceService(store, roster)

    record = svc.register_individual(5, SESSION_DATE, False, "Viaje", now=fixed_now)

    assert record.group_id == 2
    assert record.enrollment_id == 5
    assert record.notes == "Viaje"


def test_register_individual_unknown_enrollment(store, roster, fixed_now):
    with pytest.raises(ValidationError):
        AttendanceService(store, roster).register_individual(99, SESSION_DATE, True, now=fixed_now)


def test_session_dates_are_listed_ascending(store, roster, fixed_now):
    svc = AttendanceService(store, roster)
    svc.register_bulk(1, SESSION_DATE, [AttendanceEntry(1, True)], now=fixed_now)
    svc.register_bulk(1, SESSION_DATE - timedelta(days=7), [AttendanceEntry(1, False)], now=fixed_now)

    assert svc.get_session_dates(1) == [SESSION_DATE - timedelta(days=7), SESSION_DATE]


def test_registration_invalidates_cached_statistics(container, fixed_now):
    stats = container.statistics_service
    container.attendance_service.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)
    assert stats.get_group_statistics(1).overall.average_percentage == pytest.approx(66.67)

    container.attendance_service.register_bulk(1, SESSION_DATE, [AttendanceEntry(2, True)], now=fixed_now)

    assert stats.get_group_statistics(1).overall.average_percentage == 100.0


def test_update_by_id_amends_mark_and_notes(store, roster, fixed_now):
    svc = AttendanceService(store, roster)
    pedro = svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)[1]

    later = fixed_now + timedelta(minutes=10)
    updated = svc.update_record(pedro.attendance_id, True, "Llegó tarde", now=later)

    assert updated.attendance_id == pedro.attendance_id
    assert updated.enrollment_id == 2
    assert (updated.attended, updated.notes) == (True, "Llegó tarde")
    assert updated.created_at == fixed_now
    assert updated.updated_at == later
    assert store.get_by_id(pedro.attendance_id) == updated
    assert len(store.get_by_group_and_date(1, SESSION_DATE)) == 3


def test_update_by_id_with_same_values_keeps_updated_at(store, roster, fixed_now):
    svc = AttendanceService(store, roster)
    ana = svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)[0]

    same = svc.update_record(ana.attendance_id, True, now=fixed_now + timedelta(hours=1))

    assert same == ana


def test_update_unknown_id_raises_not_found(store, roster, fixed_now):
    with pytest.raises(NotFoundError) as exc_info:
        AttendanceService(store, roster).update_record(404, True, now=fixed_now)

    assert exc_info.value.kind == ErrorKind.NOT_FOUND


def test_update_outside_the_window_is_rejected(store, roster, fixed_now):
    svc = AttendanceService(store, roster)
    ana = svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)[0]

    with pytest.raises(InvalidDateError):
        svc.update_record(ana.attendance_id, False, now=fixed_now + timedelta(days=31))

    assert store.get_by_id(ana.attendance_id).attended is True


def test_update_rejects_non_boolean_mark(store, roster, fixed_now):
    svc = AttendanceService(store, roster)
    ana = svc.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)[0]

    with pytest.raises(ValidationError):
        svc.update_record(ana.attendance_id, "no", now=fixed_now)


def test_update_invalidates_cached_statistics(container, fixed_now):
    stats = container.statistics_service
    pedro = container.attendance_service.register_bulk(1, SESSION_DATE, first_batch(), now=fixed_now)[1]
    assert stats.get_group_statistics(1).overall.average_percentage == pytest.approx(66.67)

    container.attendance_service.update_record(pedro.attendance_id, True, now=fixed_now)

    assert stats.get_group_statistics(1).overall.average_percentage == 100.0
