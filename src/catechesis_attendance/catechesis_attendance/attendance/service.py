from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import normalize_notes, require_positive_id
from ..core.constants import STORE_CONFLICT_RETRIES
from ..core.exceptions import NotFoundError, RosterMismatchError, StoreConflictError, ValidationError
from ..roster.repository import RosterProvider
from ..statistics.cache import StatisticsCache
from .date_validator import DateValidation, require_valid_session_date, validate_session_date
from .locks import KeyedLocks
from .model import AttendanceEntry, AttendanceRecord, BatchOutcome
from .repository import AttendanceRecordStore

logger = logging.getLogger(__name__)


class AttendanceService:
    """Registers attendance batches for one (group, session date).

    A batch is validated completely (date window, entry shape, roster
    membership) before anything is written, then applied by the store as one
    unit while holding the per-(group, date) lock. Entries left out of a batch
    are not touched.
    """

    def __init__(
        self,
        attendance: AttendanceRecordStore,
        roster: RosterProvider,
        *,
        cache: Optional[StatisticsCache] = None,
        locks: Optional[KeyedLocks] = None,
        conflict_retries: int = STORE_CONFLICT_RETRIES,
    ):
        self._attendance = attendance
        self._roster = roster
        self._cache = cache
        self._locks = locks or KeyedLocks()
        self._conflict_retries = int(conflict_retries)

    def validate_session_date(self, session_date: date, *, today: Optional[date] = None) -> DateValidation:
        return validate_session_date(session_date, today=today)

    def register_bulk(
        self,
        group_id: int,
        session_date: date,
        entries: Sequence[AttendanceEntry],
        *,
        now: Optional[datetime] = None,
    ) -> list[AttendanceRecord]:
        now = now or now_local()
        group_id = require_positive_id(group_id, "Grupo")

        try:
            require_valid_session_date(session_date, today=now.date())
            batch = self._normalize_entries(entries)
            self._check_roster(group_id, batch)
        except ValidationError as e:
            logger.info("batch rejected group=%s date=%s kind=%s: %s", group_id, session_date, e.kind.value, e)
            raise

        return list(self._commit(group_id, session_date, batch, now).records)

    def register_individual(
        self,
        enrollment_id: int,
        session_date: date,
        attended: bool,
        notes: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        enrollment_id = require_positive_id(enrollment_id, "Inscripción")
        enrollment = self._roster.get_by_id(enrollment_id)
        if not enrollment:
            raise ValidationError("La inscripción no existe")

        records = self.register_bulk(
            enrollment.group_id,
            session_date,
            [AttendanceEntry(enrollment_id=enrollment_id, attended=attended, notes=notes)],
            now=now,
        )
        return next(r for r in records if r.enrollment_id == enrollment_id)

    def update_record(
        self,
        attendance_id: int,
        attended: bool,
        notes: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Amend one existing record by id.

        The record's session date must still be inside the registration window.
        The write goes through the same locked batch path as ``register_bulk``.
        """

        now = now or now_local()
        attendance_id = require_positive_id(attendance_id, "Asistencia")
        current = self._attendance.get_by_id(attendance_id)
        if current is None:
            raise NotFoundError(f"El registro de asistencia {attendance_id} no existe")

        try:
            require_valid_session_date(current.session_date, today=now.date())
            batch = self._normalize_entries(
                [AttendanceEntry(enrollment_id=current.enrollment_id, attended=attended, notes=notes)]
            )
        except ValidationError as e:
            logger.info("update rejected attendance=%s kind=%s: %s", attendance_id, e.kind.value, e)
            raise

        outcome = self._commit(current.group_id, current.session_date, batch, now)
        return next(r for r in outcome.records if r.enrollment_id == current.enrollment_id)

    def get_records_by_group_and_date(self, group_id: int, session_date: date) -> list[AttendanceRecord]:
        return list(self._attendance.get_by_group_and_date(require_positive_id(group_id, "Grupo"), session_date))

    def get_records_by_enrollment(self, enrollment_id: int) -> list[AttendanceRecord]:
        return list(self._attendance.get_by_enrollment(require_positive_id(enrollment_id, "Inscripción")))

    def get_session_dates(self, group_id: int) -> list[date]:
        return list(self._attendance.list_session_dates(require_positive_id(group_id, "Grupo")))

    def _normalize_entries(self, entries: Sequence[AttendanceEntry]) -> list[AttendanceEntry]:
        if not entries:
            raise ValidationError("Debe marcar la asistencia de al menos un catequizando")

        seen: set[int] = set()
        batch: list[AttendanceEntry] = []
        for e in entries:
            enrollment_id = require_positive_id(e.enrollment_id, "Inscripción")
            if enrollment_id in seen:
                raise ValidationError(f"La inscripción {enrollment_id} aparece más de una vez en el registro")
            if not isinstance(e.attended, bool):
                raise ValidationError(f"Marca de asistencia no válida para la inscripción {enrollment_id}")
            seen.add(enrollment_id)
            batch.append(AttendanceEntry(enrollment_id=enrollment_id, attended=e.attended, notes=normalize_notes(e.notes)))
        return batch

    def _check_roster(self, group_id: int, batch: Sequence[AttendanceEntry]) -> None:
        roster_ids = {en.enrollment_id for en in self._roster.list_for_group(group_id)}
        unknown = [e.enrollment_id for e in batch if e.enrollment_id not in roster_ids]
        if unknown:
            raise RosterMismatchError(group_id=group_id, enrollment_ids=unknown)

    def _commit(
        self,
        group_id: int,
        session_date: date,
        batch: Sequence[AttendanceEntry],
        now: datetime,
    ) -> BatchOutcome:
        with self._locks.hold((group_id, session_date)):
            outcome = self._apply_with_retry(group_id=group_id, session_date=session_date, batch=batch, now=now)

        logger.info(
            "batch stored group=%s date=%s entries=%d created=%d amended=%d unchanged=%d",
            group_id,
            session_date,
            len(batch),
            outcome.created,
            outcome.amended,
            outcome.unchanged,
        )
        if self._cache is not None:
            self._cache.invalidate(group_id=group_id, enrollment_ids=[e.enrollment_id for e in batch])
        return outcome

    def _apply_with_retry(
        self,
        *,
        group_id: int,
        session_date: date,
        batch: Sequence[AttendanceEntry],
        now: datetime,
    ) -> BatchOutcome:
        attempt = 0
        while True:
            try:
                return self._attendance.upsert_batch(group_id=group_id, session_date=session_date, entries=batch, now=now)
            except StoreConflictError:
                if attempt >= self._conflict_retries:
                    logger.warning("batch conflict group=%s date=%s, giving up after %d retries", group_id, session_date, attempt)
                    raise
                attempt += 1
                logger.warning("batch conflict group=%s date=%s, retrying (%d)", group_id, session_date, attempt)
