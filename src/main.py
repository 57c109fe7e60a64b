"""Cruxlog API — FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.analytics.config_loader import get_analytics_config, reload_analytics_config
from src.config import get_settings
from src.routers import cycle, health, notifications, reminders, statistics

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("cruxlog")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting Cruxlog API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    if settings.analytics_config_path:
        reload_analytics_config(Path(settings.analytics_config_path))
    else:
        get_analytics_config()
    yield
    logger.info("Cruxlog API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Cruxlog API",
        description=(
            "Climbing training journal analytics — workout statistics, "
            "cycle-aware insights, and daily training reminders."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside v1 prefix — always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(statistics.router, prefix=v1_prefix)
    app.include_router(cycle.router, prefix=v1_prefix)
    app.include_router(reminders.router, prefix=v1_prefix)
    app.include_router(notifications.router, prefix=v1_prefix)

    return app


app = create_app()
