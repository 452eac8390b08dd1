from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.constants import DEFAULT_STORE_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import StoreConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceEntry, AttendanceRecord, BatchOutcome, RecordQuery
from .repository import AttendanceRecordStore

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT attendance_id, enrollment_id, group_id, session_date, attended, notes, created_at, updated_at
    FROM attendance_records
"""

# updated_at is assigned first so it still compares against the old marks.
_UPSERT = """
    INSERT INTO attendance_records(enrollment_id, group_id, session_date, attended, notes, created_at, updated_at)
    VALUES(%s,%s,%s,%s,%s,%s,%s)
    ON DUPLICATE KEY UPDATE
        updated_at = IF(attended <=> VALUES(attended) AND notes <=> VALUES(notes), updated_at, VALUES(updated_at)),
        attended = VALUES(attended),
        notes = VALUES(notes)
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        enrollment_id=int(r["enrollment_id"]),
        group_id=int(r["group_id"]),
        session_date=r["session_date"],
        attended=bool(r["attended"]),
        notes=r.get("notes"),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
    )


def batch_lock_name(group_id: int, session_date: date) -> str:
    return f"asistencia:{int(group_id)}:{session_date.isoformat()}"


class MySQLAttendanceRecordStore(AttendanceRecordStore):
    def __init__(self, conn_factory: DatabaseConnection, *, lock_timeout_seconds: int = DEFAULT_STORE_LOCK_TIMEOUT_SECONDS):
        self._conn_factory = conn_factory
        self._lock_timeout = int(lock_timeout_seconds)

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE attendance_id=%s", (int(attendance_id),))
            row = fetchone(cur)
            return _to_record(row) if row else None

    def get_by_group_and_date(self, group_id: int, session_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE group_id=%s AND session_date=%s ORDER BY enrollment_id",
                (int(group_id), session_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def get_by_enrollment(self, enrollment_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE enrollment_id=%s ORDER BY session_date ASC", (int(enrollment_id),))
            return [_to_record(r) for r in fetchall(cur)]

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _UPSERT,
                (
                    record.enrollment_id,
                    record.group_id,
                    record.session_date,
                    int(record.attended),
                    record.notes,
                    record.created_at,
                    record.updated_at,
                ),
            )
            cur.execute(
                _SELECT + " WHERE enrollment_id=%s AND session_date=%s",
                (record.enrollment_id, record.session_date),
            )
            return _to_record(fetchone(cur))

    def _acquire_batch_lock(self, cur, name: str) -> None:
        cur.execute("SELECT GET_LOCK(%s, %s) AS acquired", (name, self._lock_timeout))
        row = fetchone(cur)
        if not row or int(row.get("acquired") or 0) != 1:
            logger.warning("batch lock %s not acquired within %ss", name, self._lock_timeout)
            raise StoreConflictError("Otro registro de asistencia está en curso para este grupo y fecha")

    def upsert_batch(
        self,
        *,
        group_id: int,
        session_date: date,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> BatchOutcome:
        lock_name = batch_lock_name(group_id, session_date)
        ids = [int(e.enrollment_id) for e in entries]

        with db_cursor(self._conn_factory) as (conn, cur):
            # Named locks are per session: closing the connection on error releases it.
            self._acquire_batch_lock(cur, lock_name)

            existing = {}
            if ids:
                cur.execute(
                    _SELECT + f" WHERE session_date=%s AND enrollment_id IN ({in_clause(ids)}) FOR UPDATE",
                    (session_date, *ids),
                )
                existing = {int(r["enrollment_id"]): _to_record(r) for r in fetchall(cur)}

            created = amended = unchanged = 0
            for e in entries:
                current = existing.get(int(e.enrollment_id))
                if current is None:
                    created += 1
                elif current.has_marks(attended=e.attended, notes=e.notes):
                    unchanged += 1
                else:
                    amended += 1

            cur.executemany(
                _UPSERT,
                [
                    (int(e.enrollment_id), int(group_id), session_date, int(bool(e.attended)), e.notes, now, now)
                    for e in entries
                ],
            )
            cur.execute(
                _SELECT + " WHERE group_id=%s AND session_date=%s ORDER BY enrollment_id",
                (int(group_id), session_date),
            )
            records = [_to_record(r) for r in fetchall(cur)]

            conn.commit()
            cur.execute("SELECT RELEASE_LOCK(%s) AS released", (lock_name,))
            fetchall(cur)

        return BatchOutcome(records=records, created=created, amended=amended, unchanged=unchanged)

    def query_by_filter(self, query: RecordQuery) -> Sequence[AttendanceRecord]:
        if query.matches_nothing:
            return []

        clauses = ["1=1"]
        params: list[object] = []
        if query.group_ids is not None:
            group_ids = sorted(query.group_ids)
            clauses.append(f"group_id IN ({in_clause(group_ids)})")
            params.extend(group_ids)
        if query.enrollment_ids is not None:
            enrollment_ids = sorted(query.enrollment_ids)
            clauses.append(f"enrollment_id IN ({in_clause(enrollment_ids)})")
            params.extend(enrollment_ids)
        if query.date_range.start:
            clauses.append("session_date >= %s")
            params.append(query.date_range.start)
        if query.date_range.end:
            clauses.append("session_date <= %s")
            params.append(query.date_range.end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + f" WHERE {' AND '.join(clauses)} ORDER BY session_date ASC, enrollment_id ASC",
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_session_dates(self, group_id: int) -> Sequence[date]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT DISTINCT session_date FROM attendance_records WHERE group_id=%s ORDER BY session_date ASC",
                (int(group_id),),
            )
            return [r["session_date"] for r in fetchall(cur)]
