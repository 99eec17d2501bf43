from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig

_FILENAME_PATTERN = re.compile(r'filename="?([^";]+)"?')


class ApiClient:
    """Minimal HTTP client for the sensor insights service."""

    def __init__(self, config: CLIConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def get_dashboard(self, refresh: bool = False) -> Dict[str, Any]:
        try:
            if refresh:
                response = self._client.post("/sensors/refresh")
            else:
                response = self._client.get("/sensors")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            self._handle_request_error(exc)
        return response.json()

    def get_analysis(
        self,
        sensor: str,
        time_range: str = "hour",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        params = self._range_params(time_range, start, end)
        try:
            response = self._client.get(f"/sensors/{sensor}/analysis", params=params)
            if response.status_code == 404:
                raise typer.BadParameter(f"Sensor {sensor} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            self._handle_request_error(exc)
        return response.json()

    def export_csv(
        self,
        sensor: str,
        time_range: str = "hour",
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> tuple[str, str]:
        params = self._range_params(time_range, start, end)
        try:
            response = self._client.get(f"/sensors/{sensor}/export", params=params)
            if response.status_code == 404:
                raise typer.BadParameter(f"Sensor {sensor} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            self._handle_request_error(exc)
        disposition = response.headers.get("content-disposition", "")
        match = _FILENAME_PATTERN.search(disposition)
        filename = match.group(1) if match else f"{sensor}_export.csv"
        return filename, response.text

    @staticmethod
    def _range_params(
        time_range: str, start: Optional[datetime], end: Optional[datetime]
    ) -> Dict[str, str]:
        params = {"range": time_range}
        if start is not None:
            params["start"] = start.isoformat()
        if end is not None:
            params["end"] = end.isoformat()
        return params

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_request_error(exc: httpx.RequestError) -> None:
        typer.secho(f"Could not reach the service: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
