"""Run all reminder families on demand."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter

from src.analytics.reminders.activity import process_activity_notifications
from src.analytics.reminders.cycle import process_cycle_notifications
from src.analytics.reminders.inactivity import process_workout_inactivity_notifications
from src.analytics.reminders.retest import process_test_reminder_notifications
from src.dependencies import NotificationStoreDep
from src.models.api import ReminderRunRequest, ReminderRunResponse
from src.models.notifications import NotificationRecord

router = APIRouter(prefix="/reminders", tags=["reminders"])
logger = logging.getLogger("cruxlog.reminders")


@router.post("/run", response_model=ReminderRunResponse)
async def run_reminders(body: ReminderRunRequest, store: NotificationStoreDep) -> Any:
    """Evaluate every reminder family against the posted history.

    Preferences posted in the body override the saved ones for this run.
    Reminders that already fired today are skipped, so calling this
    repeatedly is safe.
    """
    now = body.now or datetime.now()
    prefs = body.notification_settings or store.get_settings()

    fired: list[NotificationRecord] = []
    fired += process_cycle_notifications(body.cycle_settings, store, prefs, now=now)
    fired += process_workout_inactivity_notifications(body.workouts, prefs, store, now=now)
    fired += process_activity_notifications(body.workouts, store, prefs, now=now)
    fired += process_test_reminder_notifications(body.test_results, prefs, store, now=now)

    logger.info("Reminder run fired %d notifications", len(fired))
    return {"fired": fired, "count": len(fired)}
