from datetime import date

from catechesis_attendance.core.enums import AttendanceClassification
from catechesis_attendance.reports.exporter import ReportExporter, export_filename
from catechesis_attendance.statistics.model import LearnerAttendanceSummary, LearnerSummaryRow

HEADER = '"Nombres","Apellidos","Documento","Grupo","Total Clases","Asistencias","Ausencias","Porcentaje","Estado"'


def _row(name="Ana", surname="López", attended=2, total=3, percentage=66.67, classification=AttendanceClassification.DEFICIENT):
    return LearnerSummaryRow(
        summary=LearnerAttendanceSummary(
            enrollment_id=1,
            total_sessions=total,
            attended_count=attended,
            absent_count=total - attended,
            percentage=percentage,
            last_attended_date=None,
            classification=classification,
        ),
        learner_name=name,
        learner_surname=surname,
        document_id="0911111111",
        group_id=1,
        group_label="Grupo A - Iniciación",
    )


def _decode(content: bytes) -> str:
    return content.decode("utf-8-sig")


def test_empty_export_is_header_only():
    assert _decode(ReportExporter().export_csv([])) == HEADER


def test_rows_follow_header_without_trailing_newline():
    text = _decode(
        ReportExporter().export_csv(
            [
                _row(),
                _row("Pedro", "Martínez", attended=3, percentage=100.0, classification=AttendanceClassification.EXCELLENT),
            ]
        )
    )

    lines = text.split("\n")
    assert lines[0] == HEADER
    assert lines[1] == '"Ana","López","0911111111","Grupo A - Iniciación","3","2","1","66.67%","deficiente"'
    assert lines[2].endswith('"100.00%","excelente"')
    assert not text.endswith("\n")


def test_content_starts_with_utf8_bom():
    assert ReportExporter().export_csv([]).startswith(b"\xef\xbb\xbf")


def test_quotes_in_values_are_doubled():
    text = _decode(ReportExporter().export_csv([_row(name='Ana "Anita"')]))

    assert '"Ana ""Anita"""' in text.split("\n")[1]


def test_estado_is_the_lowercase_classification_value():
    row = _row(attended=0, total=0, percentage=0.0, classification=AttendanceClassification.INSUFFICIENT_DATA)

    assert ReportExporter().to_row(row)[-2:] == ["0.00%", "sin_datos"]


def test_filename_carries_export_date():
    assert export_filename(date(2024, 2, 19)) == "resumen_asistencia_2024-02-19.csv"
