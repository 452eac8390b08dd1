from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceEntry, AttendanceRecord, BatchOutcome, RecordQuery


class AttendanceRecordStore(Protocol):
    """Persistence contract for attendance records.

    At most one record exists per ``(enrollment_id, session_date)``; writes to an
    existing key amend it. Records move Unregistered -> Registered -> Amended and
    never back; deletion is an administrative path outside this contract.
    """

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_group_and_date(self, group_id: int, session_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_by_enrollment(self, enrollment_id: int) -> Sequence[AttendanceRecord]:
        """Records of one enrollment ordered by session_date ascending."""

        raise NotImplementedError

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        raise NotImplementedError

    def upsert_batch(
        self,
        *,
        group_id: int,
        session_date: date,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> BatchOutcome:
        """Apply every entry or none; concurrent readers never see a partial batch."""

        raise NotImplementedError

    def query_by_filter(self, query: RecordQuery) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_session_dates(self, group_id: int) -> Sequence[date]:
        raise NotImplementedError
