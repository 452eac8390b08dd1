from __future__ import annotations

from enum import Enum


class AttendanceClassification(str, Enum):
    """Categoría de asistencia de un catequizando."""

    EXCELLENT = "excelente"
    GOOD = "buena"
    REGULAR = "regular"
    DEFICIENT = "deficiente"
    # Not a risk category: zero recorded sessions.
    INSUFFICIENT_DATA = "sin_datos"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class ErrorKind(str, Enum):
    """Tipos de error expuestos a quien llama (API / UI)."""

    VALIDATION = "VALIDATION"
    INVALID_DATE = "INVALID_DATE"
    ROSTER_MISMATCH = "ROSTER_MISMATCH"
    STORE_CONFLICT = "STORE_CONFLICT"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
