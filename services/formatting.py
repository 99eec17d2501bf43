from __future__ import annotations

from typing import Optional

from services.parsing import parse_value

UNAVAILABLE = "—"

_ONE_DECIMAL = {"Temperature", "Humidity", "Soil Moisture"}
_WHOLE_NUMBER = {"Air Quality", "Pressure"}


def format_sensor_value(raw: Optional[str], category: str) -> str:
    """Render a raw field string for display; never raises."""
    value = parse_value(raw)
    if value is None:
        return UNAVAILABLE

    if category in _ONE_DECIMAL:
        return f"{value:.1f}"
    if category in _WHOLE_NUMBER:
        return str(int(value))
    if category == "Rain":
        return f"{value:.1f}" if value > 0 else "0"
    return f"{value:.1f}"
