from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.api import get_dashboard
from app.main import create_app
from services.dashboard import build_default_dashboard
from tests.fakes import FakeThingSpeak, build_service


@pytest.fixture
def fake() -> FakeThingSpeak:
    return FakeThingSpeak()


@pytest.fixture
def api_client(fake: FakeThingSpeak) -> Iterator[TestClient]:
    service = build_service(fake)
    app = create_app()
    app.dependency_overrides[get_dashboard] = lambda: service
    with TestClient(app) as client:
        yield client


def test_lifespan_clears_cached_dashboard() -> None:
    app = create_app()

    with TestClient(app):
        during = build_default_dashboard()

    after = build_default_dashboard()
    try:
        assert after is not during
    finally:
        build_default_dashboard.cache_clear()


def test_get_sensors_returns_snapshot(api_client: TestClient) -> None:
    response = api_client.get("/sensors")

    assert response.status_code == 200
    payload = response.json()
    assert [sensor["key"] for sensor in payload["sensors"]] == [
        "temperature",
        "humidity",
        "soil-moisture",
        "air-quality",
        "rain",
        "pressure",
    ]
    temperature = payload["sensors"][0]
    assert temperature["value"] == "23.5"
    assert temperature["unit"] == "°C"
    assert temperature["trend"]["direction"] == "up"
    assert len(temperature["readings"]) == 5


def test_refresh_picks_up_new_values(api_client: TestClient, fake: FakeThingSpeak) -> None:
    api_client.get("/sensors")
    fake.latest[6] = "1001.7"

    cached = api_client.get("/sensors").json()
    refreshed = api_client.post("/sensors/refresh").json()

    assert cached["sensors"][5]["value"] == "1013"
    assert refreshed["sensors"][5]["value"] == "1001"


def test_analysis_endpoint(api_client: TestClient, fake: FakeThingSpeak) -> None:
    response = api_client.get("/sensors/temperature/analysis", params={"range": "week"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["time_range"] == "week"
    assert payload["range_label"] == "7 Days"
    assert payload["threshold"] == 30.0
    assert [event["crossing_up"] for event in payload["events"]] == [True, False, True]
    assert payload["statistics"]["count"] == 5
    assert 0.5 <= payload["prediction"]["confidence"] <= 0.95
    assert fake.requests[-1].url.params["days"] == "7"


def test_analysis_without_threshold_or_prediction(api_client: TestClient, fake: FakeThingSpeak) -> None:
    fake.history[5] = ["0", "1.5"]

    payload = api_client.get("/sensors/Rain/analysis").json()

    assert payload["threshold"] is None
    assert payload["events"] == []
    assert payload["prediction"] is None
    assert payload["trend"] == {"direction": "up", "change_percent": 0.0}


def test_analysis_unknown_sensor_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/sensors/wind/analysis")

    assert response.status_code == 404
    assert "wind" in response.json()["detail"]


def test_custom_range_without_bounds_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.get("/sensors/humidity/analysis", params={"range": "custom"})

    assert response.status_code == 400
    assert "start and end" in response.json()["detail"]


def test_invalid_range_is_rejected(api_client: TestClient) -> None:
    response = api_client.get("/sensors/humidity/analysis", params={"range": "year"})

    assert response.status_code == 422


def test_upstream_failure_returns_bad_gateway(api_client: TestClient, fake: FakeThingSpeak) -> None:
    fake.failing_history.add(3)

    response = api_client.get("/sensors/soil-moisture/analysis")

    assert response.status_code == 502
    assert "HTTP 500" in response.json()["detail"]


def test_export_endpoint_returns_csv(api_client: TestClient) -> None:
    response = api_client.get("/sensors/humidity/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="Humidity_export.csv"' in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "Timestamp,Humidity (%)"
    assert lines[1] == "2024-06-01 10:00:00,60.0"


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"
