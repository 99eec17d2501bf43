"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.schemas import Dashboard, SensorAnalysis
from clients.thingspeak import ThingSpeakError
from models.records import TimeRange
from services.dashboard import DashboardService, build_default_dashboard

router = APIRouter()


def get_dashboard() -> DashboardService:
    return build_default_dashboard()


def _upstream_error(exc: ThingSpeakError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.get(
    "/sensors",
    response_model=Dashboard,
    summary="Last known value, recent readings and trend of every sensor.",
)
async def get_sensors(
    dashboard: DashboardService = Depends(get_dashboard),
) -> Dashboard:
    return await dashboard.snapshot()


@router.post(
    "/sensors/refresh",
    response_model=Dashboard,
    summary="Fetch every sensor field again and return the new snapshot.",
)
async def refresh_sensors(
    dashboard: DashboardService = Depends(get_dashboard),
) -> Dashboard:
    return await dashboard.refresh()


@router.get(
    "/sensors/{sensor}/analysis",
    response_model=SensorAnalysis,
    summary="Statistics, trend, threshold crossings and prediction for one sensor.",
)
async def get_sensor_analysis(
    sensor: str,
    time_range: TimeRange = Query(TimeRange.hour, alias="range", description="History window."),
    start: Optional[datetime] = Query(None, description="Start of a custom range."),
    end: Optional[datetime] = Query(None, description="End of a custom range."),
    dashboard: DashboardService = Depends(get_dashboard),
) -> SensorAnalysis:
    try:
        return await dashboard.analyze(sensor, time_range=time_range, start=start, end=end)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ThingSpeakError as exc:
        raise _upstream_error(exc) from exc


@router.get(
    "/sensors/{sensor}/export",
    summary="Download the readings of one sensor as CSV.",
    response_class=Response,
)
async def export_sensor(
    sensor: str,
    time_range: TimeRange = Query(TimeRange.hour, alias="range", description="History window."),
    start: Optional[datetime] = Query(None, description="Start of a custom range."),
    end: Optional[datetime] = Query(None, description="End of a custom range."),
    dashboard: DashboardService = Depends(get_dashboard),
) -> Response:
    try:
        filename, content = await dashboard.export_csv(
            sensor, time_range=time_range, start=start, end=end
        )
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ThingSpeakError as exc:
        raise _upstream_error(exc) from exc
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
