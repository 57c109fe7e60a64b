"""Health check endpoint — public, no auth required."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from src.dependencies import AppSettings, NotificationStoreDep

router = APIRouter(tags=["system"])


@router.get("/health")
async def health_check(store: NotificationStoreDep, settings: AppSettings) -> dict:
    """Liveness probe. Returns 200 if the API process is up."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "notifications": len(store),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
