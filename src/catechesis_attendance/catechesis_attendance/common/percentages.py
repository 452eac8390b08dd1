"""Percentage arithmetic shared by summaries, classification and exports.

Every consumer rounds through :func:`attendance_percentage` so that badges,
CSV cells and risk labels never disagree at a threshold boundary.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..core.constants import PERCENTAGE_DECIMALS

_QUANTUM = Decimal(1).scaleb(-PERCENTAGE_DECIMALS)


def attendance_percentage(attended: int, total: int) -> float:
    if total <= 0:
        return 0.0
    ratio = Decimal(int(attended)) * 100 / Decimal(int(total))
    return float(ratio.quantize(_QUANTUM, rounding=ROUND_HALF_UP))


def mean_percentage(values) -> float:
    values = list(values)
    if not values:
        return 0.0
    total = sum((Decimal(str(v)) for v in values), Decimal(0))
    return float((total / len(values)).quantize(_QUANTUM, rounding=ROUND_HALF_UP))


def format_percentage(value) -> str:
    """Render as ``NN.NN%``."""
    return f"{Decimal(str(value)).quantize(_QUANTUM, rounding=ROUND_HALF_UP)}%"
