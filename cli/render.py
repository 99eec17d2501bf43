from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_TREND_ARROWS = {"up": "↑", "down": "↓", "stable": "→"}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_trend(trend: Dict[str, Any] | None) -> str:
    if not trend:
        return "n/a"
    direction = trend.get("direction", "stable")
    arrow = _TREND_ARROWS.get(direction, "?")
    return f"{arrow} {direction} ({trend.get('change_percent', 0):.1f}%)"


def render_dashboard(payload: Dict[str, Any]) -> None:
    echo_heading("Sensor Dashboard")
    typer.echo(f"refreshed_at: {payload.get('refreshed_at')}")
    sensors = payload.get("sensors") or []
    if not sensors:
        typer.echo("No sensors available.")
        return
    for sensor in sensors:
        readings = sensor.get("readings") or []
        typer.echo(
            f"  - {sensor.get('title')}: {sensor.get('value')} {sensor.get('unit')}"
            f" | trend {_format_trend(sensor.get('trend'))}"
            f" | {len(readings)} readings"
        )


def render_analysis(payload: Dict[str, Any]) -> None:
    echo_heading(f"{payload.get('title')} ({payload.get('range_label')})")
    unit = payload.get("unit")

    statistics = payload.get("statistics") or {}
    typer.echo()
    echo_heading("Statistics")
    echo_key_values(
        [
            ("count", statistics.get("count")),
            ("min_value", statistics.get("min_value")),
            ("max_value", statistics.get("max_value")),
            ("mean_value", statistics.get("mean_value")),
            ("std_dev", statistics.get("std_dev")),
            ("variability", statistics.get("variability")),
            ("regression_trend", statistics.get("regression_trend")),
        ]
    )

    typer.echo()
    echo_heading("Trend")
    typer.echo(_format_trend(payload.get("trend")))

    prediction = payload.get("prediction")
    typer.echo()
    echo_heading("Prediction")
    if prediction:
        echo_key_values(
            [
                ("next_value", f"{prediction.get('predicted_value'):.2f} {unit}"),
                ("confidence", f"{prediction.get('confidence'):.0%}"),
                ("expected_at", prediction.get("predicted_timestamp")),
            ]
        )
    else:
        typer.echo("Not enough readings for a prediction.")

    events = payload.get("events") or []
    typer.echo()
    echo_heading("Threshold Events")
    if payload.get("threshold") is None:
        typer.echo("No threshold defined for this sensor.")
    elif events:
        for event in events:
            label = "Exceeded threshold" if event.get("crossing_up") else "Dropped below threshold"
            typer.echo(f"  - {event.get('timestamp')}: {label} ({event.get('value')} {unit})")
    else:
        typer.echo("No threshold crossings detected.")
