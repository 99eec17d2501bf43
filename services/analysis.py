"""Trend, threshold-crossing and next-value prediction for a reading series.

Every routine here is a pure function of the series it receives. The only
nondeterministic input is the jitter added to predictions, which comes from
an injectable ``random.Random`` and can be switched off with
``jitter_factor=0``.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Mapping, Optional, Sequence

from models.records import SensorReading
from services.statistics import SeriesStatistics, StatisticsCalculator

STABLE_DELTA = 0.1
MIN_PREDICTION_POINTS = 5
PREDICTION_WINDOW = 10
MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95
DEFAULT_JITTER_FACTOR = 0.8

DEFAULT_THRESHOLDS: Mapping[str, float] = {
    "Temperature": 30.0,
    "Humidity": 60.0,
    "Soil Moisture": 40.0,
    "Air Quality": 50.0,
}


class TrendDirection(str, Enum):
    up = "up"
    down = "down"
    stable = "stable"


@dataclass(frozen=True)
class TrendResult:
    direction: TrendDirection
    change_percent: float


@dataclass(frozen=True)
class ThresholdEvent:
    timestamp: datetime
    value: float
    crossing_up: bool


@dataclass(frozen=True)
class PredictionResult:
    predicted_value: float
    confidence: float
    predicted_timestamp: datetime
    baseline_value: float
    slope: float
    intercept: float
    window_size: int


@dataclass(frozen=True)
class SeriesAnalysis:
    """Everything derived from one series in a single pass."""

    statistics: SeriesStatistics
    trend: TrendResult
    threshold: Optional[float]
    events: list[ThresholdEvent] = field(default_factory=list)
    prediction: Optional[PredictionResult] = None


def _sorted(readings: Sequence[SensorReading]) -> list[SensorReading]:
    return sorted(readings, key=lambda reading: reading.timestamp)


def calculate_trend(readings: Sequence[SensorReading]) -> TrendResult:
    """Compare the first and last readings in time order."""
    if len(readings) < 2:
        return TrendResult(direction=TrendDirection.stable, change_percent=0.0)

    ordered = _sorted(readings)
    first = ordered[0].value
    last = ordered[-1].value
    delta = last - first

    if abs(delta) < STABLE_DELTA:
        return TrendResult(direction=TrendDirection.stable, change_percent=0.0)

    direction = TrendDirection.up if delta > 0 else TrendDirection.down
    change = abs(delta) / first * 100 if first > 0 else 0.0
    return TrendResult(direction=direction, change_percent=change)


def threshold_for(
    category: str, thresholds: Optional[Mapping[str, float]] = None
) -> Optional[float]:
    table = DEFAULT_THRESHOLDS if thresholds is None else thresholds
    return table.get(category)


def detect_threshold_crossings(
    readings: Sequence[SensorReading], threshold: Optional[float]
) -> list[ThresholdEvent]:
    """Report each reading at which the series moved across ``threshold``."""
    if threshold is None or len(readings) < 2:
        return []

    ordered = _sorted(readings)
    above = ordered[0].value > threshold
    events: list[ThresholdEvent] = []
    for reading in ordered[1:]:
        now_above = reading.value > threshold
        if now_above != above:
            events.append(
                ThresholdEvent(
                    timestamp=reading.timestamp,
                    value=reading.value,
                    crossing_up=now_above,
                )
            )
            above = now_above
    return events


def _confidence(values: Sequence[float], mean: float) -> float:
    if mean == 0:
        return MIN_CONFIDENCE
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    variation = math.sqrt(variance) / mean
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, 1.0 - variation))


def predict_next_value(
    readings: Sequence[SensorReading],
    jitter_factor: float = DEFAULT_JITTER_FACTOR,
    rng: Optional[random.Random] = None,
) -> Optional[PredictionResult]:
    """Extrapolate one step past the last readings with a least-squares line.

    The regression uses the index of each reading inside the window as x.
    The returned value is jittered by up to ``jitter_factor * |slope|``;
    ``baseline_value`` holds the unjittered extrapolation.
    """
    if len(readings) < MIN_PREDICTION_POINTS:
        return None

    window = _sorted(readings)[-PREDICTION_WINDOW:]
    n = len(window)
    xs = [float(index) for index in range(n)]
    ys = [reading.value for reading in window]
    mean_x = sum(xs) / n
    mean_y = sum(ys) / n

    denominator = sum((x - mean_x) ** 2 for x in xs)
    if denominator == 0:
        return None
    numerator = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))

    slope = numerator / denominator
    intercept = mean_y - slope * mean_x
    baseline = slope * n + intercept

    amplitude = abs(slope) * jitter_factor
    noise = 0.0
    if amplitude > 0:
        noise = (rng or random.Random()).uniform(-amplitude, amplitude)

    intervals = [
        (current.timestamp - previous.timestamp).total_seconds()
        for previous, current in zip(window, window[1:])
    ]
    average_interval = abs(sum(intervals) / len(intervals))

    return PredictionResult(
        predicted_value=baseline + noise,
        confidence=_confidence(ys, mean_y),
        predicted_timestamp=window[-1].timestamp + timedelta(seconds=average_interval),
        baseline_value=baseline,
        slope=slope,
        intercept=intercept,
        window_size=n,
    )


class SeriesAnalyzer:
    """Runs every analysis over a series with one set of thresholds."""

    def __init__(
        self,
        thresholds: Optional[Mapping[str, float]] = None,
        jitter_factor: float = DEFAULT_JITTER_FACTOR,
        rng: Optional[random.Random] = None,
        calculator: Optional[StatisticsCalculator] = None,
    ) -> None:
        self.thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
        self.jitter_factor = jitter_factor
        self.rng = rng
        self.calculator = calculator or StatisticsCalculator()

    def analyze(self, category: str, readings: Sequence[SensorReading]) -> SeriesAnalysis:
        threshold = threshold_for(category, self.thresholds)
        return SeriesAnalysis(
            statistics=self.calculator.summarize(readings),
            trend=calculate_trend(readings),
            threshold=threshold,
            events=detect_threshold_crossings(readings, threshold),
            prediction=predict_next_value(
                readings, jitter_factor=self.jitter_factor, rng=self.rng
            ),
        )
