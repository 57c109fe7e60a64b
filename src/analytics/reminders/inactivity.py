"""Workout inactivity reminder."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Sequence

from src.analytics.config_loader import AnalyticsConfig, get_analytics_config
from src.analytics.reminders.base import days_between, days_text, fire_once
from src.models.notifications import (
    ActionButton,
    NotificationDraft,
    NotificationPriority,
    NotificationRecord,
    NotificationSettings,
    NotificationType,
)
from src.models.training import WorkoutRecord

if TYPE_CHECKING:
    from src.analytics.notification_store import NotificationStore

logger = logging.getLogger("cruxlog.analytics.reminders.inactivity")

INACTIVITY_KEY = "inactivity"


@dataclass
class WorkoutInactivityCheck:
    should_remind: bool
    days_since_last_workout: int
    last_workout_date: date | None


def check_workout_inactivity(
    workouts: Sequence[WorkoutRecord],
    inactivity_days: int | None = None,
    today: date | None = None,
    config: AnalyticsConfig | None = None,
) -> WorkoutInactivityCheck:
    """Compare the calendar days since the latest workout with the threshold.

    Args:
        workouts:        Workout history.
        inactivity_days: Days without a workout before reminding (defaults
                         to reminders.inactivity.default_days).
        today:           Day to evaluate (defaults to the local date).
        config:          Analytics config.

    Returns:
        WorkoutInactivityCheck; never reminds without history.
    """
    if not workouts:
        return WorkoutInactivityCheck(
            should_remind=False, days_since_last_workout=0, last_workout_date=None
        )

    if inactivity_days is None:
        inactivity_days = (config or get_analytics_config()).reminders.default_inactivity_days
    today = today or date.today()
    last_workout_date = max(w.start_time for w in workouts).date()
    days_since = days_between(last_workout_date, today)

    return WorkoutInactivityCheck(
        should_remind=days_since >= inactivity_days,
        days_since_last_workout=days_since,
        last_workout_date=last_workout_date,
    )


def create_workout_inactivity_notification(check: WorkoutInactivityCheck) -> NotificationDraft:
    return NotificationDraft(
        type=NotificationType.workout_inactivity,
        logical_key=INACTIVITY_KEY,
        title="🏋️ Workout Reminder",
        message=(
            f"You haven't logged a workout in {days_text(check.days_since_last_workout)}. "
            "Time to get back on track!"
        ),
        priority=NotificationPriority.medium,
        action_button=ActionButton(text="Log Workout", action="create_workout"),
    )


def process_workout_inactivity_notifications(
    workouts: Sequence[WorkoutRecord],
    settings: NotificationSettings,
    store: NotificationStore,
    now: datetime | None = None,
) -> list[NotificationRecord]:
    """Store an inactivity reminder if enabled and due today."""
    if not settings.workout_inactivity_enabled:
        return []

    now = now or datetime.now()
    check = check_workout_inactivity(workouts, settings.workout_inactivity_days, now.date())
    if not check.should_remind:
        logger.debug("No inactivity reminder due (%d days)", check.days_since_last_workout)
        return []
    return fire_once(store, create_workout_inactivity_notification(check), now)
