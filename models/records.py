"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single timestamped sample for one channel field."""

    timestamp: datetime
    value: float


@dataclass(frozen=True, slots=True)
class SensorField:
    """Describes one numbered field of the sensor channel."""

    key: str
    title: str
    unit: str
    field_number: int


DEFAULT_SENSOR_FIELDS: tuple[SensorField, ...] = (
    SensorField(key="temperature", title="Temperature", unit="°C", field_number=1),
    SensorField(key="humidity", title="Humidity", unit="%", field_number=2),
    SensorField(key="soil-moisture", title="Soil Moisture", unit="%", field_number=3),
    SensorField(key="air-quality", title="Air Quality", unit="AQI", field_number=4),
    SensorField(key="rain", title="Rain", unit="mm", field_number=5),
    SensorField(key="pressure", title="Pressure", unit="hPa", field_number=6),
)


def find_field(fields: Iterable[SensorField], name: str) -> Optional[SensorField]:
    """Look a field up by key or title, ignoring case."""
    wanted = name.strip().lower()
    for candidate in fields:
        if wanted in (candidate.key, candidate.title.lower()):
            return candidate
    return None


class TimeRange(str, Enum):
    """History windows offered by the dashboard."""

    hour = "hour"
    day = "day"
    week = "week"
    month = "month"
    custom = "custom"

    @property
    def label(self) -> str:
        return _RANGE_LABELS[self]

    def query_params(self, results: int = 60) -> Dict[str, str]:
        """Query parameters selecting this window; custom ranges add start/end separately."""
        if self is TimeRange.hour:
            return {"results": str(results)}
        if self is TimeRange.custom:
            return {}
        return {"days": str(_RANGE_DAYS[self])}


_RANGE_LABELS = {
    TimeRange.hour: "Last Hour",
    TimeRange.day: "24 Hours",
    TimeRange.week: "7 Days",
    TimeRange.month: "30 Days",
    TimeRange.custom: "Custom",
}

_RANGE_DAYS = {
    TimeRange.day: 1,
    TimeRange.week: 7,
    TimeRange.month: 30,
}
