"""CSV export of reading series."""

from __future__ import annotations

import csv
import io
from datetime import timezone
from typing import Iterable

from models.records import SensorField, SensorReading

EXPORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def export_filename(field: SensorField) -> str:
    return f"{field.title}_export.csv"


def export_readings_csv(field: SensorField, readings: Iterable[SensorReading]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Timestamp", f"{field.title} ({field.unit})"])
    for reading in sorted(readings, key=lambda item: item.timestamp):
        timestamp = reading.timestamp.astimezone(timezone.utc)
        writer.writerow([timestamp.strftime(EXPORT_TIMESTAMP_FORMAT), reading.value])
    return buffer.getvalue()
