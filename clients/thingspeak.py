"""Async HTTP client for the ThingSpeak channel read API."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from models.records import TimeRange
from models.thingspeak import ThingSpeakEntry, ThingSpeakHistory

logger = logging.getLogger(__name__)

RANGE_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class ThingSpeakError(Exception):
    """Raised when the upstream API cannot deliver a usable payload."""


class ThingSpeakClient:
    """Reads the latest value and history of single channel fields."""

    def __init__(
        self,
        base_url: str,
        channel_id: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        history_results: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.channel_id = channel_id
        self.api_key = api_key
        self.timeout = timeout
        self.history_results = history_results
        self._transport = transport

    async def fetch_latest(self, field_number: int) -> Optional[ThingSpeakEntry]:
        """Return the newest entry for a field, or None when the channel has none."""
        path = f"/channels/{self.channel_id}/fields/{field_number}/last.json"
        payload = await self._get_json(path, {})
        if not isinstance(payload, dict):
            return None
        try:
            return ThingSpeakEntry.model_validate(payload)
        except ValidationError as exc:
            raise ThingSpeakError(f"Unexpected latest-entry payload for field {field_number}.") from exc

    async def fetch_history(
        self,
        field_number: int,
        time_range: TimeRange = TimeRange.hour,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        results: Optional[int] = None,
    ) -> ThingSpeakHistory:
        params = self._history_params(time_range, start, end, results)
        path = f"/channels/{self.channel_id}/fields/{field_number}.json"
        payload = await self._get_json(path, params)
        if not isinstance(payload, dict):
            raise ThingSpeakError(f"Unexpected history payload for field {field_number}.")
        try:
            return ThingSpeakHistory.model_validate(payload)
        except ValidationError as exc:
            raise ThingSpeakError(f"Unexpected history payload for field {field_number}.") from exc

    def _history_params(
        self,
        time_range: TimeRange,
        start: Optional[datetime],
        end: Optional[datetime],
        results: Optional[int],
    ) -> Dict[str, str]:
        if time_range is TimeRange.custom:
            if start is None or end is None:
                raise ValueError("A custom range needs both start and end.")
            if start > end:
                raise ValueError("Range start must not be after its end.")
            return {
                "start": _format_range_timestamp(start),
                "end": _format_range_timestamp(end),
            }
        return time_range.query_params(results or self.history_results)

    async def _get_json(self, path: str, params: Dict[str, str]) -> Any:
        query = dict(params)
        if self.api_key:
            query["api_key"] = self.api_key
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=query)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "ThingSpeak HTTP error",
                extra={"url": url, "status_code": exc.response.status_code},
            )
            raise ThingSpeakError(
                f"ThingSpeak returned HTTP {exc.response.status_code} for {path}."
            ) from exc
        except httpx.RequestError as exc:
            logger.error("ThingSpeak request failed", extra={"url": url, "reason": str(exc)})
            raise ThingSpeakError(f"ThingSpeak request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("ThingSpeak returned invalid JSON", extra={"url": url})
            raise ThingSpeakError(f"ThingSpeak returned invalid JSON for {path}.") from exc


def _format_range_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(RANGE_TIMESTAMP_FORMAT)
