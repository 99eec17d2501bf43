"""Dashboard refresh orchestration and per-sensor analysis."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional, Sequence

from app.schemas import Dashboard, Reading, SensorAnalysis, SensorSnapshot, Trend
from clients.thingspeak import ThingSpeakClient
from datastore.snapshot_store import SnapshotStore, build_default_store
from models.records import DEFAULT_SENSOR_FIELDS, SensorField, SensorReading, TimeRange, find_field
from services.analysis import SeriesAnalyzer, calculate_trend
from services.export import export_filename, export_readings_csv
from services.formatting import format_sensor_value
from services.parsing import readings_from_history
from settings import get_settings

logger = logging.getLogger(__name__)


class DashboardService:
    """Fetches every sensor field concurrently and keeps the last known state."""

    def __init__(
        self,
        client: ThingSpeakClient,
        store: SnapshotStore,
        analyzer: SeriesAnalyzer,
        fields: Sequence[SensorField] = DEFAULT_SENSOR_FIELDS,
    ) -> None:
        self.client = client
        self.store = store
        self.analyzer = analyzer
        self.fields = tuple(fields)
        self._refresh_task: Optional[asyncio.Task[Dashboard]] = None
        self._refreshed_at: Optional[datetime] = None

    def resolve_field(self, name: str) -> SensorField:
        field = find_field(self.fields, name)
        if field is None:
            raise KeyError(f"Sensor {name!r} not found.")
        return field

    async def refresh(self) -> Dashboard:
        """Refresh all sensors, joining any refresh that is already running."""
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._refresh_all())
            self._refresh_task = task
        return await asyncio.shield(task)

    async def snapshot(self) -> Dashboard:
        sensors = self.store.scan()
        if not sensors:
            return await self.refresh()
        return Dashboard(refreshed_at=self._refreshed_at, sensors=sensors)

    async def analyze(
        self,
        sensor: str,
        time_range: TimeRange = TimeRange.hour,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> SensorAnalysis:
        field = self.resolve_field(sensor)
        readings = await self._fetch_series(field, time_range, start, end)
        analysis = self.analyzer.analyze(field.title, readings)
        logger.info(
            "Analysed sensor series",
            extra={
                "sensor": field.key,
                "time_range": time_range.value,
                "reading_count": len(readings),
                "event_count": len(analysis.events),
            },
        )
        return SensorAnalysis.build(
            key=field.key,
            title=field.title,
            unit=field.unit,
            time_range=time_range,
            readings=readings,
            analysis=analysis,
        )

    async def export_csv(
        self,
        sensor: str,
        time_range: TimeRange = TimeRange.hour,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> tuple[str, str]:
        field = self.resolve_field(sensor)
        readings = await self._fetch_series(field, time_range, start, end)
        return export_filename(field), export_readings_csv(field, readings)

    async def _fetch_series(
        self,
        field: SensorField,
        time_range: TimeRange,
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> list[SensorReading]:
        history = await self.client.fetch_history(
            field.field_number, time_range=time_range, start=start, end=end
        )
        return readings_from_history(history, field.field_number)

    async def _refresh_all(self) -> Dashboard:
        start_time = time.perf_counter()
        fields = self.fields
        outcomes = await asyncio.gather(
            *(self.client.fetch_latest(field.field_number) for field in fields),
            *(self.client.fetch_history(field.field_number) for field in fields),
            return_exceptions=True,
        )
        latest_outcomes = outcomes[: len(fields)]
        history_outcomes = outcomes[len(fields):]

        now = datetime.now(timezone.utc)
        failures = 0
        snapshots: list[SensorSnapshot] = []
        for field, latest, history in zip(fields, latest_outcomes, history_outcomes):
            snapshot = self.store.get(field.key) or SensorSnapshot(
                key=field.key,
                title=field.title,
                unit=field.unit,
                field_number=field.field_number,
            )
            updated = False

            if isinstance(latest, BaseException):
                failures += 1
                self._log_failure(field, "latest", latest)
            elif latest is not None:
                raw_value = latest.value_for(field.field_number)
                if raw_value is not None:
                    snapshot.value = format_sensor_value(raw_value, field.title)
                    updated = True

            if isinstance(history, BaseException):
                failures += 1
                self._log_failure(field, "history", history)
            else:
                readings = readings_from_history(history, field.field_number)
                snapshot.readings = [Reading.from_domain(reading) for reading in readings]
                snapshot.trend = Trend.from_domain(calculate_trend(readings))
                updated = True

            if updated:
                snapshot.updated_at = now
            snapshots.append(snapshot)

        self.store.put_many(snapshots)
        self._refreshed_at = now
        logger.info(
            "Dashboard refreshed",
            extra={
                "failure_count": failures,
                "refresh_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return Dashboard(refreshed_at=now, sensors=self.store.scan())

    @staticmethod
    def _log_failure(field: SensorField, request: str, error: Any) -> None:
        logger.warning(
            "Sensor %s request failed; keeping previous value",
            request,
            extra={
                "sensor": field.key,
                "field_number": field.field_number,
                "reason": str(error) or type(error).__name__,
            },
        )


@lru_cache
def build_default_dashboard() -> DashboardService:
    """Factory that wires the dashboard from environment settings."""
    settings = get_settings()
    client = ThingSpeakClient(
        base_url=settings.thingspeak_base_url,
        channel_id=settings.channel_id,
        api_key=settings.read_api_key,
        timeout=settings.request_timeout,
        history_results=settings.history_results,
    )
    analyzer = SeriesAnalyzer(
        thresholds=settings.thresholds, jitter_factor=settings.jitter_factor
    )
    return DashboardService(client=client, store=build_default_store(), analyzer=analyzer)
