from __future__ import annotations

from typing import Iterator

import pytest

from services.dashboard import DashboardService
from tests.fakes import FakeThingSpeak, build_service


@pytest.fixture()
def fake_thingspeak() -> FakeThingSpeak:
    return FakeThingSpeak()


@pytest.fixture()
def dashboard_service(fake_thingspeak: FakeThingSpeak) -> Iterator[DashboardService]:
    yield build_service(fake_thingspeak)
