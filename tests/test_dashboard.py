from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

import pytest

from clients.thingspeak import ThingSpeakError
from models.records import TimeRange
from services.analysis import TrendDirection
from services.dashboard import DashboardService
from services.formatting import UNAVAILABLE


def _by_key(dashboard) -> dict:
    return {sensor.key: sensor for sensor in dashboard.sensors}


def test_refresh_fetches_every_field(dashboard_service: DashboardService, fake_thingspeak) -> None:
    dashboard = asyncio.run(dashboard_service.refresh())

    sensors = _by_key(dashboard)
    assert [sensor.field_number for sensor in dashboard.sensors] == [1, 2, 3, 4, 5, 6]
    assert sensors["temperature"].value == "23.5"
    assert sensors["air-quality"].value == "47"
    assert sensors["rain"].value == "0"
    assert sensors["pressure"].value == "1013"
    assert len(sensors["temperature"].readings) == 5
    assert sensors["temperature"].trend.direction is TrendDirection.up
    assert sensors["soil-moisture"].trend.direction is TrendDirection.down
    assert sensors["rain"].trend.direction is TrendDirection.stable
    assert dashboard.refreshed_at is not None
    assert len(fake_thingspeak.requests) == 12


def test_failed_requests_keep_previous_values(
    dashboard_service: DashboardService, fake_thingspeak, caplog
) -> None:
    asyncio.run(dashboard_service.refresh())

    fake_thingspeak.latest[1] = "99.0"
    fake_thingspeak.history[1] = ["1", "2", "3", "4", "5"]
    fake_thingspeak.latest[2] = "70.0"
    fake_thingspeak.failing_latest.add(1)
    fake_thingspeak.failing_history.add(1)

    with caplog.at_level(logging.WARNING):
        dashboard = asyncio.run(dashboard_service.refresh())

    sensors = _by_key(dashboard)
    assert sensors["temperature"].value == "23.5"
    assert [reading.value for reading in sensors["temperature"].readings][0] == 20.0
    assert sensors["humidity"].value == "70.0"

    failures = [record for record in caplog.records if record.name == "services.dashboard"
                and record.levelno == logging.WARNING]
    assert len(failures) == 2
    assert all(record.sensor == "temperature" for record in failures)


def test_first_refresh_failure_leaves_placeholder(
    dashboard_service: DashboardService, fake_thingspeak
) -> None:
    fake_thingspeak.failing_latest.add(4)
    fake_thingspeak.failing_history.add(4)

    dashboard = asyncio.run(dashboard_service.refresh())

    air_quality = _by_key(dashboard)["air-quality"]
    assert air_quality.value == UNAVAILABLE
    assert air_quality.readings == []
    assert air_quality.updated_at is None
    assert _by_key(dashboard)["temperature"].value == "23.5"


def test_overlapping_refreshes_share_one_fan_out(
    dashboard_service: DashboardService, fake_thingspeak
) -> None:
    async def refresh_twice():
        return await asyncio.gather(dashboard_service.refresh(), dashboard_service.refresh())

    first, second = asyncio.run(refresh_twice())

    assert first == second
    assert len(fake_thingspeak.requests) == 12


def test_snapshot_refreshes_only_when_empty(
    dashboard_service: DashboardService, fake_thingspeak
) -> None:
    async def snapshot_twice():
        await dashboard_service.snapshot()
        return await dashboard_service.snapshot()

    dashboard = asyncio.run(snapshot_twice())

    assert len(dashboard.sensors) == 6
    assert len(fake_thingspeak.requests) == 12


def test_analyze_returns_full_analysis(dashboard_service: DashboardService) -> None:
    analysis = asyncio.run(dashboard_service.analyze("Temperature", TimeRange.day))

    assert analysis.key == "temperature"
    assert analysis.range_label == "24 Hours"
    assert analysis.threshold == 30.0
    assert [event.crossing_up for event in analysis.events] == [True, False, True]
    assert analysis.statistics.count == 5
    assert analysis.prediction is not None
    assert analysis.prediction.window_size == 5


def test_analyze_unknown_sensor_raises_key_error(dashboard_service: DashboardService) -> None:
    with pytest.raises(KeyError):
        asyncio.run(dashboard_service.analyze("wind"))


def test_analyze_propagates_upstream_errors(
    dashboard_service: DashboardService, fake_thingspeak
) -> None:
    fake_thingspeak.failing_history.add(2)

    with pytest.raises(ThingSpeakError):
        asyncio.run(dashboard_service.analyze("humidity"))


def test_export_csv_uses_requested_window(
    dashboard_service: DashboardService, fake_thingspeak
) -> None:
    start = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
    end = datetime(2024, 6, 1, 11, 0, tzinfo=timezone.utc)

    filename, content = asyncio.run(
        dashboard_service.export_csv("rain", TimeRange.custom, start=start, end=end)
    )

    assert filename == "Rain_export.csv"
    assert content.splitlines()[0] == "Timestamp,Rain (mm)"
    assert len(content.splitlines()) == 6
    assert fake_thingspeak.requests[-1].url.params["start"] == "2024-06-01T09:00:00Z"
