"""Summary statistics for a reading series."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from models.records import SensorReading

INSUFFICIENT_DATA = "Insufficient data"

_VARIABILITY_BANDS = (
    (0.05, "Very stable"),
    (0.1, "Stable"),
    (0.2, "Moderate"),
    (0.5, "Variable"),
)


@dataclass(frozen=True)
class SeriesStatistics:
    """Computed statistics for one series of readings."""

    count: int = 0
    min_value: float | None = None
    max_value: float | None = None
    mean_value: float | None = None
    std_dev: float | None = None
    variability: str = INSUFFICIENT_DATA
    regression_trend: str = INSUFFICIENT_DATA


class StatisticsCalculator:
    """Pure statistics component that can be unit tested in isolation."""

    def summarize(self, readings: Sequence[SensorReading]) -> SeriesStatistics:
        if not readings:
            return SeriesStatistics()

        ordered = sorted(readings, key=lambda reading: reading.timestamp)
        values = [reading.value for reading in ordered]
        count = len(values)
        mean = sum(values) / count
        std_dev = math.sqrt(sum((value - mean) ** 2 for value in values) / count)

        return SeriesStatistics(
            count=count,
            min_value=min(values),
            max_value=max(values),
            mean_value=mean,
            std_dev=std_dev,
            variability=self.variability(std_dev, mean),
            regression_trend=self.regression_trend(values, mean),
        )

    @staticmethod
    def variability(std_dev: float, mean: float) -> str:
        if mean == 0:
            return INSUFFICIENT_DATA
        ratio = std_dev / mean
        for limit, label in _VARIABILITY_BANDS:
            if ratio < limit:
                return label
        return "Highly variable"

    @staticmethod
    def regression_trend(values: Sequence[float], mean: float) -> str:
        """Label the fitted slope of the whole series as a percent of its mean."""
        if len(values) < 3:
            return INSUFFICIENT_DATA

        mean_x = (len(values) - 1) / 2
        denominator = sum((index - mean_x) ** 2 for index in range(len(values)))
        if denominator == 0 or mean == 0:
            return "Stable"
        numerator = sum(
            (index - mean_x) * (value - mean) for index, value in enumerate(values)
        )
        slope_percent = numerator / denominator / mean * 100

        if abs(slope_percent) < 0.5:
            return "Stable"
        if slope_percent > 0:
            return f"Increasing ({abs(slope_percent):.1f}%)"
        return f"Decreasing ({abs(slope_percent):.1f}%)"
