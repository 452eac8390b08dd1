from datetime import date

import pytest

from catechesis_attendance.attendance.model import AttendanceEntry, AttendanceFilters
from catechesis_attendance.core.exceptions import ValidationError

SESSION_DATE = date(2024, 2, 19)


def test_export_uses_filters_and_dated_filename(container, fixed_now):
    container.attendance_service.register_bulk(
        1, SESSION_DATE, [AttendanceEntry(1, True), AttendanceEntry(2, False)], now=fixed_now
    )
    container.attendance_service.register_bulk(2, SESSION_DATE, [AttendanceEntry(4, True)], now=fixed_now)

    report = container.report_service.export_report(AttendanceFilters(group_id=1), today=SESSION_DATE)

    assert report.filename == "resumen_asistencia_2024-02-19.csv"
    assert report.mimetype == "text/csv"
    lines = report.content.decode("utf-8-sig").split("\n")
    assert len(lines) == 3
    assert lines[1].startswith('"Ana","López"')
    assert lines[2].startswith('"Pedro","Martínez"')


def test_export_with_no_matching_records_has_only_header(container):
    report = container.report_service.export_report(today=SESSION_DATE)

    assert report.content.decode("utf-8-sig").startswith('"Nombres"')
    assert "\n" not in report.content.decode("utf-8-sig")


@pytest.mark.parametrize("fmt", ["pdf", "xlsx", ""])
def test_unsupported_formats_are_rejected(container, fmt):
    with pytest.raises(ValidationError):
        container.report_service.export_report(format=fmt)


def test_format_is_case_insensitive(container):
    assert container.report_service.export_report(format="CSV", today=SESSION_DATE).filename.endswith(".csv")


def test_filename_defaults_to_the_utc_date(container, monkeypatch):
    from catechesis_attendance.reports import service as report_module

    monkeypatch.setattr(report_module, "today_utc", lambda: date(2024, 3, 1))

    assert container.report_service.export_report().filename == "resumen_asistencia_2024-03-01.csv"
