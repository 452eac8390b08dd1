from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Optional, Sequence, Tuple

from .model import AttendanceEntry, AttendanceRecord, BatchOutcome, RecordQuery
from .repository import AttendanceRecordStore


class InMemoryAttendanceRecordStore(AttendanceRecordStore):
    """Thread-safe store kept in process memory.

    A single lock guards every read and write, so a batch becomes visible all
    at once. Used by tests and by local runs without MySQL.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._by_key: Dict[Tuple[int, date], AttendanceRecord] = {}
        self._next_id = 1

    def _sorted(self, records) -> list[AttendanceRecord]:
        return sorted(records, key=lambda r: (r.session_date, r.enrollment_id))

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            return next((r for r in self._by_key.values() if r.attendance_id == int(attendance_id)), None)

    def get_by_group_and_date(self, group_id: int, session_date: date) -> Sequence[AttendanceRecord]:
        with self._lock:
            return self._sorted(
                r for r in self._by_key.values() if r.group_id == int(group_id) and r.session_date == session_date
            )

    def get_by_enrollment(self, enrollment_id: int) -> Sequence[AttendanceRecord]:
        with self._lock:
            return self._sorted(r for r in self._by_key.values() if r.enrollment_id == int(enrollment_id))

    def _store(self, record: AttendanceRecord) -> Tuple[AttendanceRecord, Optional[AttendanceRecord]]:
        existing = self._by_key.get(record.key)
        if existing is None:
            stored = replace(record, attendance_id=self._next_id)
            self._next_id += 1
        else:
            stored = existing.amend(attended=record.attended, notes=record.notes, now=record.updated_at)
        self._by_key[record.key] = stored
        return stored, existing

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            stored, _ = self._store(record)
            return stored

    def upsert_batch(
        self,
        *,
        group_id: int,
        session_date: date,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> BatchOutcome:
        created = amended = unchanged = 0
        incoming = [
            AttendanceRecord(
                enrollment_id=int(entry.enrollment_id),
                group_id=int(group_id),
                session_date=session_date,
                attended=bool(entry.attended),
                notes=entry.notes,
                created_at=now,
                updated_at=now,
            )
            for entry in entries
        ]
        with self._lock:
            for record in incoming:
                existing = self._by_key.get(record.key)
                if existing is None:
                    created += 1
                elif existing.has_marks(attended=record.attended, notes=record.notes):
                    unchanged += 1
                else:
                    amended += 1
            for record in incoming:
                self._store(record)

            records = self.get_by_group_and_date(group_id, session_date)
        return BatchOutcome(records=records, created=created, amended=amended, unchanged=unchanged)

    def query_by_filter(self, query: RecordQuery) -> Sequence[AttendanceRecord]:
        if query.matches_nothing:
            return []
        with self._lock:
            return self._sorted(r for r in self._by_key.values() if query.matches(r))

    def list_session_dates(self, group_id: int) -> Sequence[date]:
        with self._lock:
            return sorted({r.session_date for r in self._by_key.values() if r.group_id == int(group_id)})
