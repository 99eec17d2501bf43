from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional


_BASE_URL_ENV = "THINGSPEAK_BASE_URL"
_CHANNEL_ID_ENV = "THINGSPEAK_CHANNEL_ID"
_API_KEY_ENV = "THINGSPEAK_READ_API_KEY"
_TIMEOUT_ENV = "THINGSPEAK_TIMEOUT"
_HISTORY_RESULTS_ENV = "HISTORY_RESULTS"
_THRESHOLDS_ENV = "SENSOR_THRESHOLDS"
_JITTER_ENV = "PREDICTION_JITTER_FACTOR"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    thingspeak_base_url: str
    channel_id: str
    read_api_key: Optional[str]
    request_timeout: float
    history_results: int
    thresholds: Dict[str, float] = field(default_factory=dict)
    jitter_factor: float = 0.8
    log_level: str = "INFO"


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float(name: str, default: float, allow_zero: bool = False) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if not math.isfinite(parsed):
        return default
    if parsed > 0 or (allow_zero and parsed == 0):
        return parsed
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def parse_thresholds(raw: Optional[str]) -> Dict[str, float]:
    """Parse ``Title=value`` pairs separated by commas, ignoring bad entries."""
    thresholds: Dict[str, float] = {}
    if not raw:
        return thresholds
    for chunk in raw.split(","):
        name, sep, value = chunk.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        try:
            parsed = float(value.strip())
        except ValueError:
            continue
        if math.isfinite(parsed):
            thresholds[name] = parsed
    return thresholds


@lru_cache
def get_settings() -> Settings:
    return Settings(
        thingspeak_base_url=_read_str_env(_BASE_URL_ENV, "https://api.thingspeak.com"),
        channel_id=_read_str_env(_CHANNEL_ID_ENV, "2910832"),
        read_api_key=_read_optional_env(_API_KEY_ENV, None),
        request_timeout=_read_float(_TIMEOUT_ENV, 10.0),
        history_results=_read_positive_int(_HISTORY_RESULTS_ENV, 60),
        thresholds=parse_thresholds(os.getenv(_THRESHOLDS_ENV)),
        jitter_factor=_read_float(_JITTER_ENV, 0.8, allow_zero=True),
        log_level=_read_log_level("INFO"),
    )
