from datetime import date, datetime, timedelta

from catechesis_attendance.attendance.memory_attendance_repository import InMemoryAttendanceRecordStore
from catechesis_attendance.attendance.model import AttendanceEntry, AttendanceRecord, DateRange, RecordQuery

NOW = datetime(2024, 2, 19, 18, 0)
D1 = date(2024, 2, 5)
D2 = date(2024, 2, 12)
D3 = date(2024, 2, 19)


def _record(enrollment_id, group_id, session_date, attended, notes=None, now=NOW):
    return AttendanceRecord(
        enrollment_id=enrollment_id,
        group_id=group_id,
        session_date=session_date,
        attended=attended,
        notes=notes,
        created_at=now,
        updated_at=now,
    )


def _seed(store):
    store.upsert_batch(group_id=1, session_date=D2, entries=[AttendanceEntry(2, True), AttendanceEntry(1, False)], now=NOW)
    store.upsert_batch(group_id=1, session_date=D1, entries=[AttendanceEntry(1, True)], now=NOW)
    store.upsert_batch(group_id=2, session_date=D3, entries=[AttendanceEntry(4, True)], now=NOW)


def test_upsert_keeps_one_record_per_enrollment_and_date():
    store = InMemoryAttendanceRecordStore()

    first = store.upsert(_record(1, 1, D1, True))
    second = store.upsert(_record(1, 1, D1, False, "Tarde", now=NOW + timedelta(hours=1)))

    assert len(store.get_by_enrollment(1)) == 1
    assert second.attendance_id == first.attendance_id
    assert second.attended is False
    assert second.created_at == NOW


def test_batch_reports_created_amended_and_unchanged():
    store = InMemoryAttendanceRecordStore()
    store.upsert_batch(group_id=1, session_date=D1, entries=[AttendanceEntry(1, True), AttendanceEntry(2, True)], now=NOW)

    outcome = store.upsert_batch(
        group_id=1,
        session_date=D1,
        entries=[AttendanceEntry(1, True), AttendanceEntry(2, False), AttendanceEntry(3, True)],
        now=NOW,
    )

    assert (outcome.created, outcome.amended, outcome.unchanged) == (1, 1, 1)
    assert [r.enrollment_id for r in outcome.records] == [1, 2, 3]


def test_records_by_enrollment_are_ordered_by_date():
    store = InMemoryAttendanceRecordStore()
    _seed(store)

    assert [r.session_date for r in store.get_by_enrollment(1)] == [D1, D2]


def test_query_filters_by_group_and_date_range():
    store = InMemoryAttendanceRecordStore()
    _seed(store)

    in_group = store.query_by_filter(RecordQuery(group_ids=frozenset({1})))
    ranged = store.query_by_filter(RecordQuery(date_range=DateRange(start=D2, end=D3)))
    by_enrollment = store.query_by_filter(RecordQuery(enrollment_ids=frozenset({2, 4})))

    assert {r.group_id for r in in_group} == {1}
    assert len(in_group) == 3
    assert [(r.session_date, r.enrollment_id) for r in ranged] == [(D2, 1), (D2, 2), (D3, 4)]
    assert sorted(r.enrollment_id for r in by_enrollment) == [2, 4]


def test_empty_group_selection_matches_nothing():
    store = InMemoryAttendanceRecordStore()
    _seed(store)

    assert store.query_by_filter(RecordQuery(group_ids=frozenset())) == []


def test_session_dates_are_distinct_and_ascending():
    store = InMemoryAttendanceRecordStore()
    _seed(store)

    assert store.list_session_dates(1) == [D1, D2]
    assert store.list_session_dates(3) == []


def test_get_by_id_finds_the_stored_record():
    store = InMemoryAttendanceRecordStore()
    _seed(store)
    pedro = store.get_by_group_and_date(1, D2)[1]

    assert store.get_by_id(pedro.attendance_id) == pedro
    assert store.get_by_id(999) is None
