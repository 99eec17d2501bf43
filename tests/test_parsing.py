from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from models.thingspeak import ThingSpeakHistory
from services.parsing import parse_timestamp, parse_value, readings_from_history


def _history(*feeds: dict) -> ThingSpeakHistory:
    return ThingSpeakHistory.model_validate(
        {"channel": {"id": 2910832, "name": "Farm", "field1": "Temperature"}, "feeds": list(feeds)}
    )


def test_parse_timestamp_accepts_thingspeak_format() -> None:
    assert parse_timestamp("2024-01-01T10:15:00Z") == datetime(
        2024, 1, 1, 10, 15, tzinfo=timezone.utc
    )
    assert parse_timestamp("2024-01-01T12:15:00+02:00") == datetime(
        2024, 1, 1, 10, 15, tzinfo=timezone.utc
    )
    assert parse_timestamp("2024-01-01T10:15:00").tzinfo is not None


@pytest.mark.parametrize("raw", ["", "yesterday", "2024-13-01T00:00:00Z"])
def test_parse_timestamp_rejects_garbage(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_timestamp(raw)


def test_parse_value() -> None:
    assert parse_value("21.5") == 21.5
    assert parse_value("-3") == -3.0
    assert parse_value(".5e1") == 5.0
    assert parse_value(None) is None
    assert parse_value("") is None
    assert parse_value("n/a") is None
    assert parse_value("nan") is None


def test_readings_from_history_sorts_and_keeps_duplicates() -> None:
    history = _history(
        {"created_at": "2024-01-01T00:02:00Z", "entry_id": 3, "field1": "22.0"},
        {"created_at": "2024-01-01T00:00:00Z", "entry_id": 1, "field1": "20.0"},
        {"created_at": "2024-01-01T00:00:00Z", "entry_id": 2, "field1": 21},
    )

    readings = readings_from_history(history, 1)

    assert [reading.value for reading in readings] == [20.0, 21.0, 22.0]
    assert readings[0].timestamp == readings[1].timestamp


def test_readings_from_history_skips_unusable_entries(caplog) -> None:
    history = _history(
        {"created_at": "2024-01-01T00:00:00Z", "entry_id": 1, "field1": "20.0", "field2": "55"},
        {"created_at": "2024-01-01T00:01:00Z", "entry_id": 2, "field2": "56"},
        {"created_at": "2024-01-01T00:02:00Z", "entry_id": 3, "field1": "oops"},
        {"created_at": "not-a-date", "entry_id": 4, "field1": "23.0"},
        {"created_at": "2024-01-01T00:04:00Z", "entry_id": 5, "field1": None},
    )

    with caplog.at_level(logging.WARNING):
        readings = readings_from_history(history, 1)

    assert [reading.value for reading in readings] == [20.0]

    records = [record for record in caplog.records if record.name == "services.parsing"]
    reasons = sorted(record.reason for record in records)
    assert reasons == ["invalid numeric value", "invalid timestamp"]
    assert {record.entry_id for record in records} == {3, 4}


def test_entry_ignores_unknown_keys_and_missing_fields() -> None:
    history = _history({"created_at": "2024-01-01T00:00:00Z", "status": "ok", "field9": "1"})

    entry = history.feeds[0]
    assert entry.entry_id is None
    assert entry.value_for(1) is None
    assert entry.value_for(9) is None


@pytest.mark.parametrize("raw", [" 21.5 ", "1_000", "21.5\n", "0x10", "1e999", "--1"])
def test_parse_value_rejects_loose_numeric_text(raw: str) -> None:
    assert parse_value(raw) is None


def test_malformed_entries_are_skipped_without_failing_the_batch(caplog) -> None:
    history = _history(
        {"created_at": "2024-01-01T00:00:00Z", "entry_id": 1, "field1": "20.0"},
        {"created_at": None, "entry_id": 2, "field1": "21.0"},
        {"entry_id": 3, "field1": "22.0"},
        {"created_at": "2024-01-01T00:03:00Z", "entry_id": 4, "field1": {"v": 1}},
        {"created_at": "2024-01-01T00:04:00Z", "entry_id": "x", "field1": "24.0"},
        "garbage",
    )

    with caplog.at_level(logging.WARNING):
        readings = readings_from_history(history, 1)

    assert [reading.value for reading in readings] == [20.0, 24.0]

    records = [record for record in caplog.records if record.name == "services.parsing"]
    assert sorted((record.entry_id, record.reason) for record in records) == [
        (2, "invalid timestamp"),
        (3, "invalid timestamp"),
        (4, "invalid numeric value"),
    ]
