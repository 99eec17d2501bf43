from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_analysis, render_dashboard


class RangeChoice(str, Enum):
    hour = "hour"
    day = "day"
    week = "week"
    month = "month"
    custom = "custom"


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for querying the farm sensor insights service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _check_range(time_range: RangeChoice, start: Optional[datetime], end: Optional[datetime]) -> None:
    if time_range is RangeChoice.custom and (start is None or end is None):
        raise typer.BadParameter("--start and --end are required with --range custom.")


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("dashboard")
def dashboard_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False,
        "--refresh/--cached",
        help="Fetch fresh data from the sensors before displaying.",
    ),
) -> None:
    """Show the latest value and trend of every sensor."""
    state = _get_state(ctx)
    payload = state.client.get_dashboard(refresh=refresh)
    render_dashboard(payload)


@app.command("analyze")
def analyze_command(
    ctx: typer.Context,
    sensor: str = typer.Argument(..., help="Sensor key or title, e.g. temperature."),
    time_range: RangeChoice = typer.Option(RangeChoice.hour, "--range", "-r", help="History window."),
    start: Optional[datetime] = typer.Option(None, "--start", help="Start of a custom range."),
    end: Optional[datetime] = typer.Option(None, "--end", help="End of a custom range."),
) -> None:
    """Show statistics, trend, threshold events and prediction for a sensor."""
    _check_range(time_range, start, end)
    state = _get_state(ctx)
    payload = state.client.get_analysis(sensor, time_range=time_range.value, start=start, end=end)
    render_analysis(payload)


@app.command("export")
def export_command(
    ctx: typer.Context,
    sensor: str = typer.Argument(..., help="Sensor key or title, e.g. temperature."),
    time_range: RangeChoice = typer.Option(RangeChoice.hour, "--range", "-r", help="History window."),
    start: Optional[datetime] = typer.Option(None, "--start", help="Start of a custom range."),
    end: Optional[datetime] = typer.Option(None, "--end", help="End of a custom range."),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        help="Destination file (defaults to the server-suggested name).",
    ),
) -> None:
    """Download a sensor's readings as CSV."""
    _check_range(time_range, start, end)
    state = _get_state(ctx)
    filename, content = state.client.export_csv(
        sensor, time_range=time_range.value, start=start, end=end
    )
    destination = output or Path(filename)
    destination.write_text(content, encoding="utf-8")
    typer.secho(f"Exported {sensor} readings to {destination}", fg=typer.colors.GREEN)
