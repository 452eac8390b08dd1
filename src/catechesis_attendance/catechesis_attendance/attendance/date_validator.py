from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import now_local
from ..core.constants import MAX_BACKDATE_DAYS
from ..core.exceptions import InvalidDateError

FUTURE_DATE_REASON = "future date not allowed"
TOO_OLD_REASON = f"date older than {MAX_BACKDATE_DAYS} days not allowed"


@dataclass(frozen=True)
class DateValidation:
    is_valid: bool
    message: str
    reason: Optional[str] = None


def validate_session_date(session_date: date, *, today: Optional[date] = None) -> DateValidation:
    """Check a session date against the registration window [today - 30 days, today].

    Both ends are valid. ``today`` defaults to the local date at call time.
    """

    if isinstance(session_date, datetime):
        session_date = session_date.date()
    today = today or now_local().date()

    if session_date > today:
        return DateValidation(
            is_valid=False,
            reason=FUTURE_DATE_REASON,
            message="No se puede registrar asistencia para fechas futuras",
        )
    if session_date < today - timedelta(days=MAX_BACKDATE_DAYS):
        return DateValidation(
            is_valid=False,
            reason=TOO_OLD_REASON,
            message=f"No se puede registrar asistencia para fechas anteriores a {MAX_BACKDATE_DAYS} días",
        )
    return DateValidation(is_valid=True, message="Fecha válida para registro")


def require_valid_session_date(session_date: date, *, today: Optional[date] = None) -> None:
    result = validate_session_date(session_date, today=today)
    if not result.is_valid:
        raise InvalidDateError(result.message, reason=result.reason)
