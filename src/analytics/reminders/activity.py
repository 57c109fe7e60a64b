"""Low-frequency activity nudges: mental practice and taking falls.

Both are computed over a trailing window (3 months by default) and only
fire for users who did the activity at least once in that window, so
someone who never does mental practice is not nagged about it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Sequence

from src.analytics.aggregator import StatisticsAggregator
from src.analytics.config_loader import AnalyticsConfig, get_analytics_config
from src.analytics.reminders.base import days_text, fire_once
from src.models.notifications import (
    ActionButton,
    NotificationDraft,
    NotificationPriority,
    NotificationRecord,
    NotificationSettings,
    NotificationType,
)
from src.models.training import WorkoutRecord, WorkoutType

if TYPE_CHECKING:
    from src.analytics.notification_store import NotificationStore

logger = logging.getLogger("cruxlog.analytics.reminders.activity")

MENTAL_PRACTICE_KEY = "mental_practice"
FALLS_TRACKING_KEY = "falls_tracking"


@dataclass
class ActivityReminderCheck:
    """Outcome of the activity nudges.

    ``days_since_*`` are ``math.inf`` when the activity never happened in the
    window.
    """

    should_remind_mental_session: bool
    should_remind_falls: bool
    days_since_last_mental_session: float
    days_since_last_fall: float

    @property
    def should_remind(self) -> bool:
        return self.should_remind_mental_session or self.should_remind_falls


def check_activity_reminders(
    workouts: Sequence[WorkoutRecord],
    now: datetime | None = None,
    config: AnalyticsConfig | None = None,
) -> ActivityReminderCheck:
    """Evaluate both nudges over the trailing activity window.

    Args:
        workouts: Full workout history.
        now:      Evaluation time (defaults to datetime.now()).
        config:   Analytics config (window and gap thresholds).

    Returns:
        ActivityReminderCheck.
    """
    cfg = config or get_analytics_config()
    aggregator = StatisticsAggregator(now=now, config=cfg)
    window = aggregator.get_time_range(cfg.reminders.activity_window)
    recent = aggregator.filter_workouts_by_time_range(workouts, window)

    mental = aggregator.calculate_mental_session_stats(recent)
    falls = aggregator.calculate_falls_stats(recent)

    return ActivityReminderCheck(
        should_remind_mental_session=(
            mental.total_sessions > 0
            and mental.days_since_last_session > cfg.reminders.mental_session_gap_days
        ),
        should_remind_falls=(
            falls.total_climbing_sessions > 0
            and falls.days_since_last_fall > cfg.reminders.fall_gap_days
        ),
        days_since_last_mental_session=mental.days_since_last_session,
        days_since_last_fall=falls.days_since_last_fall,
    )


def _since_text(days: float) -> str:
    if math.isinf(days):
        return "a long time"
    return days_text(int(days))


def create_mental_session_notification(check: ActivityReminderCheck) -> NotificationDraft:
    return NotificationDraft(
        type=NotificationType.general,
        logical_key=MENTAL_PRACTICE_KEY,
        title="🧘 Mental Practice Reminder",
        message=(
            f"It's been {_since_text(check.days_since_last_mental_session)} since your last "
            "mental practice session. Regular mental training is important for climbing "
            "performance and well-being."
        ),
        priority=NotificationPriority.medium,
        action_button=ActionButton(
            text="Log Mental Session",
            action="create_mental_workout",
            data={"type": WorkoutType.MENTAL_PRACTICE.value},
        ),
    )


def create_falls_tracking_notification(check: ActivityReminderCheck) -> NotificationDraft:
    return NotificationDraft(
        type=NotificationType.general,
        logical_key=FALLS_TRACKING_KEY,
        title="🧗 Falls Tracking Reminder",
        message=(
            f"It's been {_since_text(check.days_since_last_fall)} since you last took a fall "
            "while climbing. Taking falls is a normal part of pushing your limits. "
            "Consider challenging yourself more!"
        ),
        priority=NotificationPriority.low,
        action_button=ActionButton(
            text="Log Climbing Session",
            action="create_climbing_workout",
            data={
                "types": [
                    WorkoutType.BOULDERING.value,
                    WorkoutType.LEAD_ROCK.value,
                    WorkoutType.LEAD_ARTIFICIAL.value,
                ]
            },
        ),
    )


def process_activity_notifications(
    workouts: Sequence[WorkoutRecord],
    store: NotificationStore,
    settings: NotificationSettings | None = None,
    now: datetime | None = None,
    config: AnalyticsConfig | None = None,
) -> list[NotificationRecord]:
    """Store the mental-practice and falls nudges that are due today."""
    prefs = settings or NotificationSettings()
    if not prefs.activity_reminders_enabled:
        return []

    now = now or datetime.now()
    check = check_activity_reminders(workouts, now, config)

    fired: list[NotificationRecord] = []
    if check.should_remind_mental_session:
        fired += fire_once(store, create_mental_session_notification(check), now)
    if check.should_remind_falls:
        fired += fire_once(store, create_falls_tracking_notification(check), now)
    return fired
