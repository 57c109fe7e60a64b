"""Workout statistics endpoint."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException

from src.analytics.aggregator import StatisticsAggregator, TimeRange
from src.analytics.reminders.activity import process_activity_notifications
from src.dependencies import NotificationStoreDep
from src.models.api import StatisticsRequest, StatisticsResponse
from src.routers.serialization import to_payload

router = APIRouter(prefix="/statistics", tags=["statistics"])
logger = logging.getLogger("cruxlog.statistics")


@router.post("", response_model=StatisticsResponse)
async def compute_statistics(body: StatisticsRequest, store: NotificationStoreDep) -> Any:
    """Compute statistics for the requested window.

    Opening the statistics page also runs the activity nudges (mental
    practice and falls) against the full history.
    """
    now = body.now or datetime.now()
    custom_range = None
    if body.custom_start is not None and body.custom_end is not None:
        custom_range = TimeRange(start=body.custom_start, end=body.custom_end)

    logger.debug("Statistics for %s over %d workouts", body.timeframe, len(body.workouts))
    aggregator = StatisticsAggregator(now=now)
    try:
        data = aggregator.calculate_statistics(
            body.workouts,
            body.tags,
            body.timeframe,
            custom_range=custom_range,
            events=body.events,
            cycle_settings=body.cycle_settings,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    prefs = body.notification_settings or store.get_settings()
    fired = process_activity_notifications(body.workouts, store, prefs, now=now)
    return {"statistics": to_payload(data), "reminders_fired": len(fired)}
