from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date, parse_optional_date
from ..core.enums import ErrorKind
from ..core.exceptions import DomainError, RosterMismatchError, StoreUnavailableError, ValidationError
from ..container import Container
from ..statistics.model import (
    GeneralStatistics,
    GroupBreakdown,
    GroupSnapshot,
    GroupStatistics,
    GroupSummary,
    LearnerAttendanceSummary,
    LearnerSummaryRow,
    OverallStatistics,
    SummaryDistribution,
)
from .model import AttendanceEntry, AttendanceFilters, AttendanceRecord, DateRange

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_DATE: 400,
    ErrorKind.ROSTER_MISMATCH: 422,
    ErrorKind.STORE_CONFLICT: 409,
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.NOT_FOUND: 404,
}


def record_to_dict(r: AttendanceRecord) -> dict:
    return {
        "id_asistencia": r.attendance_id,
        "id_inscripcion": r.enrollment_id,
        "id_grupo": r.group_id,
        "fecha": r.session_date.isoformat(),
        "asistio": r.attended,
        "observaciones": r.notes,
        "creado_en": r.created_at.isoformat(),
        "actualizado_en": r.updated_at.isoformat(),
    }


def summary_to_dict(s: LearnerAttendanceSummary) -> dict:
    return {
        "id_inscripcion": s.enrollment_id,
        "total_clases": s.total_sessions,
        "total_asistencias": s.attended_count,
        "total_ausencias": s.absent_count,
        "porcentaje_asistencia": s.percentage,
        "ultima_asistencia": s.last_attended_date.isoformat() if s.last_attended_date else None,
        "estado_asistencia": s.classification.value,
        "datos_insuficientes": s.insufficient_data,
        "en_riesgo": s.at_risk,
    }


def summary_row_to_dict(row: LearnerSummaryRow) -> dict:
    data = summary_to_dict(row.summary)
    data.update(
        {
            "nombres": row.learner_name,
            "apellidos": row.learner_surname,
            "documento_identidad": row.document_id,
            "id_grupo": row.group_id,
            "grupo": row.group_label,
        }
    )
    return data


def distribution_to_dict(d: SummaryDistribution) -> dict:
    return {
        "total_catequizandos": d.total_learners,
        "promedio_general": d.average_percentage,
        "excelente": d.excellent,
        "buena": d.good,
        "regular": d.regular,
        "deficiente": d.deficient,
        "sin_datos": d.insufficient_data,
    }


def group_summary_to_dict(g: GroupSummary) -> dict:
    return {
        "id_grupo": g.group_id,
        "catequizandos": [summary_row_to_dict(r) for r in g.rows],
        "estadisticas_resumen": distribution_to_dict(g.distribution),
    }


def snapshot_to_dict(s: GroupSnapshot) -> dict:
    return {
        "fecha": s.session_date.isoformat() if s.session_date else None,
        "presentes": s.present,
        "ausentes": s.absent,
        "total": s.total,
        "porcentaje": s.percentage,
    }


def overall_to_dict(o: OverallStatistics) -> dict:
    return {
        "total_clases": o.total_sessions,
        "total_catequizandos": o.total_learners,
        "promedio_asistencia": o.average_percentage,
        "mejor_asistencia": o.best_percentage,
        "peor_asistencia": o.worst_percentage,
        "tendencia": o.trend.value,
        "catequizandos_riesgo": o.at_risk_count,
        "datos_insuficientes": o.insufficient_data,
    }


def breakdown_to_dict(b: GroupBreakdown) -> dict:
    return {
        "id_grupo": b.group_id,
        "grupo": b.group_label,
        "total_catequizandos": b.total_learners,
        "promedio_asistencia": b.average_percentage,
        "clases_realizadas": b.sessions_held,
    }


def group_statistics_to_dict(g: GroupStatistics) -> dict:
    return {
        "id_grupo": g.group_id,
        "asistencia_por_fecha": [snapshot_to_dict(s) for s in g.snapshot_series],
        "estadisticas_generales": overall_to_dict(g.overall),
    }


def general_statistics_to_dict(g: GeneralStatistics) -> dict:
    return {
        "asistencia_por_fecha": [snapshot_to_dict(s) for s in g.by_date],
        "asistencia_por_grupo": [breakdown_to_dict(b) for b in g.by_group],
        "estadisticas_generales": overall_to_dict(g.overall),
        "catequizandos_riesgo": [summary_row_to_dict(r) for r in g.at_risk],
    }


def error_payload(e: DomainError) -> tuple[dict, int]:
    payload = {"success": False, "error": e.kind.value, "message": str(e)}
    if isinstance(e, RosterMismatchError):
        payload["inscripciones"] = list(e.enrollment_ids)
    if e.kind == ErrorKind.STORE_CONFLICT:
        payload["accion"] = "Reintentar"
    if isinstance(e, StoreUnavailableError):
        payload["accion"] = "Reintentar"
        payload["detalle"] = e.detail
    return payload, _STATUS_BY_KIND.get(e.kind, 400)


def register(app: Flask, container: Container) -> None:
    def api_view(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except DomainError as e:
                payload, status = error_payload(e)
                return jsonify(payload), status
            except Exception:
                logger.exception("unexpected error in %s", request.path)
                return jsonify({"success": False, "error": "INTERNAL", "message": "Error interno al procesar la asistencia"}), 500

        return wrapper

    def _ok(data, status: int = 200):
        return jsonify({"success": True, "data": data}), status

    def _json_object() -> dict:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("El cuerpo de la solicitud debe ser un objeto JSON")
        return data

    def _parse_date(value: Optional[str], field_name: str = "fecha"):
        if not value:
            raise ValidationError(f"{field_name} es obligatoria")
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} no es una fecha válida (AAAA-MM-DD)")
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{field_name} no es una fecha válida (AAAA-MM-DD)")

    def _optional_int(name: str) -> Optional[int]:
        v = (request.args.get(name) or "").strip()
        if not v:
            return None
        if not v.isdigit():
            raise ValidationError(f"{name} no es válido")
        return int(v)

    def _date_range() -> DateRange:
        return DateRange(
            start=parse_optional_date(request.args.get("fecha_inicio"), "fecha_inicio"),
            end=parse_optional_date(request.args.get("fecha_fin"), "fecha_fin"),
        )

    def _filters() -> AttendanceFilters:
        dr = _date_range()
        return AttendanceFilters(
            group_id=_optional_int("grupo"),
            parish_id=_optional_int("parroquia"),
            level_id=_optional_int("nivel"),
            start_date=dr.start,
            end_date=dr.end,
        )

    @app.route("/api/asistencias/grupo/<int:group_id>/masiva", methods=["POST"], endpoint="attendance_register_bulk")
    @api_view
    def register_bulk(group_id: int):
        data = _json_object()
        session_date = _parse_date(data.get("fecha"))
        raw_entries = data.get("asistencias")
        if not isinstance(raw_entries, list):
            raise ValidationError("asistencias debe ser una lista")

        entries = []
        for item in raw_entries:
            if not isinstance(item, dict):
                raise ValidationError("Cada asistencia debe ser un objeto")
            entries.append(
                AttendanceEntry(
                    enrollment_id=item.get("id_inscripcion"),
                    attended=item.get("asistio"),
                    notes=item.get("observaciones"),
                )
            )

        records = container.attendance_service.register_bulk(group_id, session_date, entries)
        return _ok([record_to_dict(r) for r in records], 201)

    @app.route("/api/asistencias", methods=["POST"], endpoint="attendance_register_individual")
    @api_view
    def register_individual():
        data = _json_object()
        record = container.attendance_service.register_individual(
            data.get("id_inscripcion"),
            _parse_date(data.get("fecha")),
            data.get("asistio"),
            data.get("observaciones"),
        )
        return _ok(record_to_dict(record), 201)

    @app.route("/api/asistencias/<int:attendance_id>", methods=["PUT"], endpoint="attendance_update")
    @api_view
    def update(attendance_id: int):
        data = _json_object()
        record = container.attendance_service.update_record(
            attendance_id,
            data.get("asistio"),
            data.get("observaciones"),
        )
        return _ok(record_to_dict(record))

    @app.route("/api/asistencias/validar-fecha", methods=["GET"], endpoint="attendance_validate_date")
    @api_view
    def validate_date():
        result = container.attendance_service.validate_session_date(_parse_date(request.args.get("fecha")))
        return _ok({"isValid": result.is_valid, "message": result.message, "reason": result.reason})

    @app.route("/api/asistencias/grupo/<int:group_id>/fecha/<fecha>", methods=["GET"], endpoint="attendance_by_group_date")
    @api_view
    def by_group_and_date(group_id: int, fecha: str):
        records = container.attendance_service.get_records_by_group_and_date(group_id, _parse_date(fecha))
        return _ok([record_to_dict(r) for r in records])

    @app.route("/api/asistencias/grupo/<int:group_id>/fechas", methods=["GET"], endpoint="attendance_group_dates")
    @api_view
    def group_dates(group_id: int):
        return _ok([d.isoformat() for d in container.attendance_service.get_session_dates(group_id)])

    @app.route("/api/asistencias/inscripcion/<int:enrollment_id>", methods=["GET"], endpoint="attendance_by_enrollment")
    @api_view
    def by_enrollment(enrollment_id: int):
        records = container.attendance_service.get_records_by_enrollment(enrollment_id)
        return _ok([record_to_dict(r) for r in records])

    @app.route("/api/asistencias/inscripcion/<int:enrollment_id>/resumen", methods=["GET"], endpoint="attendance_learner_summary")
    @api_view
    def learner_summary(enrollment_id: int):
        summary = container.statistics_service.get_learner_summary(enrollment_id, _date_range())
        return _ok(summary_to_dict(summary))

    @app.route("/api/asistencias/grupo/<int:group_id>/resumen", methods=["GET"], endpoint="attendance_group_summary")
    @api_view
    def group_summary(group_id: int):
        summary = container.statistics_service.get_group_summary(group_id, _date_range())
        return _ok(group_summary_to_dict(summary))

    @app.route("/api/asistencias/grupo/<int:group_id>/stats", methods=["GET"], endpoint="attendance_group_stats")
    @api_view
    def group_stats(group_id: int):
        stats = container.statistics_service.get_group_statistics(group_id, _date_range())
        return _ok(group_statistics_to_dict(stats))

    @app.route("/api/asistencias/baja-asistencia", methods=["GET"], endpoint="attendance_at_risk")
    @api_view
    def at_risk():
        threshold = request.args.get("porcentaje_minimo")
        kwargs = {"threshold": threshold} if threshold else {}
        rows = container.statistics_service.get_at_risk_learners(filters=_filters(), **kwargs)
        return _ok([summary_row_to_dict(r) for r in rows])

    @app.route("/api/asistencias/estadisticas", methods=["GET"], endpoint="attendance_general_stats")
    @api_view
    def general_stats():
        stats = container.statistics_service.get_general_statistics(_filters())
        return _ok(general_statistics_to_dict(stats))

    @app.route("/api/asistencias/exportar", methods=["GET"], endpoint="attendance_export")
    @api_view
    def export():
        report = container.report_service.export_report(_filters(), request.args.get("formato") or "csv")
        return app.response_class(
            report.content,
            mimetype=report.mimetype,
            headers={"Content-Disposition": f"attachment; filename={report.filename}"},
        )
