from __future__ import annotations

from ..core.constants import (
    AT_RISK_THRESHOLD,
    EXCELLENT_MIN_PERCENTAGE,
    GOOD_MIN_PERCENTAGE,
    REGULAR_MIN_PERCENTAGE,
)
from ..core.enums import AttendanceClassification


class RiskClassifier:
    """Maps an attendance percentage to its category.

    Lower bounds are inclusive: [90, 100] excelente, [80, 90) buena,
    [70, 80) regular, [0, 70) deficiente. Callers pass percentages already
    rounded by ``common.percentages`` so every screen and export agrees.
    """

    excellent_min = EXCELLENT_MIN_PERCENTAGE
    good_min = GOOD_MIN_PERCENTAGE
    regular_min = REGULAR_MIN_PERCENTAGE

    def classify(self, percentage: float) -> AttendanceClassification:
        if percentage < 0 or percentage > 100:
            raise ValueError(f"percentage out of range: {percentage!r}")
        if percentage >= self.excellent_min:
            return AttendanceClassification.EXCELLENT
        if percentage >= self.good_min:
            return AttendanceClassification.GOOD
        if percentage >= self.regular_min:
            return AttendanceClassification.REGULAR
        return AttendanceClassification.DEFICIENT

    def is_at_risk(self, percentage: float, threshold: float = AT_RISK_THRESHOLD) -> bool:
        return percentage < threshold
