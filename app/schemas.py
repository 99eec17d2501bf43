"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.records import SensorReading, TimeRange
from services.analysis import (
    PredictionResult,
    SeriesAnalysis,
    ThresholdEvent,
    TrendDirection,
    TrendResult,
)
from services.formatting import UNAVAILABLE
from services.statistics import SeriesStatistics


class Reading(BaseModel):
    timestamp: datetime
    value: float

    @classmethod
    def from_domain(cls, reading: SensorReading) -> "Reading":
        return cls(timestamp=reading.timestamp, value=reading.value)


class Trend(BaseModel):
    """Endpoint-delta trend between the first and last reading."""

    direction: TrendDirection
    change_percent: float = Field(..., ge=0)

    @classmethod
    def from_domain(cls, trend: TrendResult) -> "Trend":
        return cls(direction=trend.direction, change_percent=trend.change_percent)


class ThresholdCrossing(BaseModel):
    timestamp: datetime
    value: float
    crossing_up: bool

    @classmethod
    def from_domain(cls, event: ThresholdEvent) -> "ThresholdCrossing":
        return cls(timestamp=event.timestamp, value=event.value, crossing_up=event.crossing_up)


class Prediction(BaseModel):
    predicted_value: float
    confidence: float = Field(..., ge=0.5, le=0.95)
    predicted_timestamp: datetime
    baseline_value: float = Field(..., description="Regression estimate before jitter.")
    slope: float
    intercept: float
    window_size: int = Field(..., ge=1)

    @classmethod
    def from_domain(cls, prediction: PredictionResult) -> "Prediction":
        return cls(
            predicted_value=prediction.predicted_value,
            confidence=prediction.confidence,
            predicted_timestamp=prediction.predicted_timestamp,
            baseline_value=prediction.baseline_value,
            slope=prediction.slope,
            intercept=prediction.intercept,
            window_size=prediction.window_size,
        )


class Statistics(BaseModel):
    count: int = Field(..., ge=0)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None
    std_dev: Optional[float] = None
    variability: str
    regression_trend: str

    @classmethod
    def from_domain(cls, statistics: SeriesStatistics) -> "Statistics":
        return cls(
            count=statistics.count,
            min_value=statistics.min_value,
            max_value=statistics.max_value,
            mean_value=statistics.mean_value,
            std_dev=statistics.std_dev,
            variability=statistics.variability,
            regression_trend=statistics.regression_trend,
        )


class SensorSnapshot(BaseModel):
    """Last known state of one dashboard sensor."""

    key: str
    title: str
    unit: str
    field_number: int = Field(..., ge=1)
    value: str = Field(default=UNAVAILABLE, description="Display-formatted latest value.")
    readings: List[Reading] = Field(default_factory=list)
    trend: Optional[Trend] = None
    updated_at: Optional[datetime] = None


class Dashboard(BaseModel):
    refreshed_at: Optional[datetime] = None
    sensors: List[SensorSnapshot] = Field(default_factory=list)


class SensorAnalysis(BaseModel):
    """Full analysis of one sensor over a history window."""

    key: str
    title: str
    unit: str
    time_range: TimeRange
    range_label: str
    readings: List[Reading] = Field(default_factory=list)
    statistics: Statistics
    trend: Trend
    threshold: Optional[float] = None
    events: List[ThresholdCrossing] = Field(default_factory=list)
    prediction: Optional[Prediction] = None

    @classmethod
    def build(
        cls,
        key: str,
        title: str,
        unit: str,
        time_range: TimeRange,
        readings: List[SensorReading],
        analysis: SeriesAnalysis,
    ) -> "SensorAnalysis":
        return cls(
            key=key,
            title=title,
            unit=unit,
            time_range=time_range,
            range_label=time_range.label,
            readings=[Reading.from_domain(reading) for reading in readings],
            statistics=Statistics.from_domain(analysis.statistics),
            trend=Trend.from_domain(analysis.trend),
            threshold=analysis.threshold,
            events=[ThresholdCrossing.from_domain(event) for event in analysis.events],
            prediction=(
                Prediction.from_domain(analysis.prediction)
                if analysis.prediction is not None
                else None
            ),
        )
