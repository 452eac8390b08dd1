from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..attendance.model import AttendanceFilters
from ..common.datetime_utils import today_utc
from ..core.exceptions import ValidationError
from ..statistics.service import StatisticsService
from .exporter import CSV_MIMETYPE, ReportExporter, export_filename

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("csv",)


@dataclass(frozen=True)
class ExportedReport:
    filename: str
    mimetype: str
    content: bytes


class ReportService:
    def __init__(self, statistics: StatisticsService, *, exporter: Optional[ReportExporter] = None):
        self._statistics = statistics
        self._exporter = exporter or ReportExporter()

    def export_report(
        self,
        filters: Optional[AttendanceFilters] = None,
        format: str = "csv",
        *,
        today: Optional[date] = None,
    ) -> ExportedReport:
        fmt = (format or "").strip().lower()
        if fmt not in SUPPORTED_FORMATS:
            raise ValidationError(f"Formato de exportación no soportado: {format}")

        today = today or today_utc()
        rows = self._statistics.get_summary_rows(filters)
        content = self._exporter.export_csv(rows)
        logger.info("exported %d summary rows (%s)", len(rows), fmt)
        return ExportedReport(filename=export_filename(today), mimetype=CSV_MIMETYPE, content=content)
