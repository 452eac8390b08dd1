from datetime import date, datetime, timedelta

import pytest

from catechesis_attendance.attendance.date_validator import (
    FUTURE_DATE_REASON,
    TOO_OLD_REASON,
    require_valid_session_date,
    validate_session_date,
)
from catechesis_attendance.core.enums import ErrorKind
from catechesis_attendance.core.exceptions import InvalidDateError

TODAY = date(2024, 2, 19)


def test_today_is_valid():
    assert validate_session_date(TODAY, today=TODAY).is_valid


def test_tomorrow_is_rejected_as_future():
    result = validate_session_date(TODAY + timedelta(days=1), today=TODAY)

    assert not result.is_valid
    assert result.reason == FUTURE_DATE_REASON
    assert "futuras" in result.message


def test_thirty_days_back_is_still_valid():
    assert validate_session_date(TODAY - timedelta(days=30), today=TODAY).is_valid


def test_thirty_one_days_back_is_rejected():
    result = validate_session_date(TODAY - timedelta(days=31), today=TODAY)

    assert not result.is_valid
    assert result.reason == TOO_OLD_REASON


def test_datetime_input_uses_its_date_part():
    assert validate_session_date(datetime(2024, 2, 19, 23, 59), today=TODAY).is_valid


def test_defaults_to_the_local_date(monkeypatch):
    from catechesis_attendance.attendance import date_validator

    monkeypatch.setattr(date_validator, "now_local", lambda: datetime(2024, 2, 19, 8, 0))

    assert validate_session_date(TODAY).is_valid
    assert not validate_session_date(TODAY + timedelta(days=1)).is_valid


def test_require_raises_invalid_date_error():
    with pytest.raises(InvalidDateError) as exc_info:
        require_valid_session_date(TODAY + timedelta(days=3), today=TODAY)

    assert exc_info.value.kind == ErrorKind.INVALID_DATE
    assert exc_info.value.reason == FUTURE_DATE_REASON
