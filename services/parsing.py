"""Conversion of ThingSpeak feeds into ordered reading series."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Optional

from models.records import SensorReading
from models.thingspeak import ThingSpeakHistory

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_timestamp(value: Optional[str]) -> datetime:
    candidate = (value or "").strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def parse_value(raw: Optional[str]) -> Optional[float]:
    """Return the numeric value of a field string, or None when unusable."""
    if not isinstance(raw, str) or _NUMBER.fullmatch(raw) is None:
        return None
    value = float(raw)
    return value if math.isfinite(value) else None


def readings_from_history(history: ThingSpeakHistory, field_number: int) -> list[SensorReading]:
    """Build the sorted series for one field, skipping unusable entries."""
    readings: list[SensorReading] = []
    for entry in history.feeds:
        raw_value = entry.value_for(field_number)
        if raw_value is None:
            continue

        value = parse_value(raw_value)
        if value is None:
            logger.warning(
                "Skipping feed entry: non-numeric value",
                extra={
                    "field_number": field_number,
                    "entry_id": entry.entry_id,
                    "reason": "invalid numeric value",
                    "raw_value": raw_value,
                },
            )
            continue

        try:
            timestamp = parse_timestamp(entry.created_at)
        except ValueError:
            logger.warning(
                "Skipping feed entry: invalid timestamp",
                extra={
                    "field_number": field_number,
                    "entry_id": entry.entry_id,
                    "reason": "invalid timestamp",
                    "raw_value": entry.created_at,
                },
            )
            continue

        readings.append(SensorReading(timestamp=timestamp, value=value))

    readings.sort(key=lambda reading: reading.timestamp)
    return readings
