from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.snapshot_store import build_default_store
from logging_config import configure_logging
from services.dashboard import build_default_dashboard


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    build_default_dashboard()
    try:
        yield
    finally:
        build_default_dashboard.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Farm Sensor Insights",
        description="Sensor dashboard backend with trend, threshold and prediction analysis.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
