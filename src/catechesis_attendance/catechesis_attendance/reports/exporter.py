from __future__ import annotations

import csv
import io
from datetime import date
from typing import Iterable

from ..common.percentages import format_percentage
from ..core.constants import EXPORT_FILENAME_PREFIX
from ..statistics.model import LearnerSummaryRow

CSV_HEADERS = [
    "Nombres",
    "Apellidos",
    "Documento",
    "Grupo",
    "Total Clases",
    "Asistencias",
    "Ausencias",
    "Porcentaje",
    "Estado",
]

CSV_MIMETYPE = "text/csv"


def export_filename(today: date) -> str:
    return f"{EXPORT_FILENAME_PREFIX}_{today.isoformat()}.csv"


class ReportExporter:
    """Render learner summaries as CSV.

    Every field is double-quoted, rows are joined with ``\\n`` and the header
    always comes first, so an empty input still yields a valid file.
    """

    encoding = "utf-8-sig"

    def to_row(self, row: LearnerSummaryRow) -> list[str]:
        s = row.summary
        return [
            row.learner_name,
            row.learner_surname,
            row.document_id,
            row.group_label,
            str(s.total_sessions),
            str(s.attended_count),
            str(s.absent_count),
            format_percentage(s.percentage),
            s.classification.value,
        ]

    def export_csv(self, rows: Iterable[LearnerSummaryRow]) -> bytes:
        out = io.StringIO()
        writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for row in rows:
            writer.writerow(self.to_row(row))

        # Separator between rows, not a terminator after the last one.
        text = out.getvalue()
        if text.endswith("\n"):
            text = text[:-1]
        return text.encode(self.encoding)
