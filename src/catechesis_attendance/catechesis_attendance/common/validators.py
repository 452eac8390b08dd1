from __future__ import annotations

from datetime import date
from typing import Optional

from ..core.exceptions import ValidationError


def require_positive_id(value, field_name: str) -> int:
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} no es válido")
    if ident <= 0:
        raise ValidationError(f"{field_name} no es válido")
    return ident


def require_date_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise ValidationError("La fecha de inicio no puede ser posterior a la fecha de fin")


def require_percentage(value, field_name: str) -> float:
    try:
        pct = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} debe ser un número")
    if pct < 0 or pct > 100:
        raise ValidationError(f"{field_name} debe estar entre 0 y 100")
    return pct


def normalize_notes(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if not isinstance(value, str):
        raise ValidationError("Las observaciones deben ser texto")
    return value.strip() or None
