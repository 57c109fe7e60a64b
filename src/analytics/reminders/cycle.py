"""Menstrual cycle reminders: period expected tomorrow, and period overdue.

Both reminders are derived from the same cycle settings the phase
calculator uses.  ``next_period_date`` is always relative to the stored
period start, so once a period is late every following day counts as one
more day overdue until the user records a new start date.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from src.analytics.config_loader import AnalyticsConfig, get_analytics_config
from src.analytics.cycle.phase_calculator import calculate_cycle_info, today_in
from src.analytics.reminders.base import days_between, fire_once, format_short_date
from src.models.cycle import CycleSettings
from src.models.notifications import (
    ActionButton,
    NotificationDraft,
    NotificationPriority,
    NotificationRecord,
    NotificationSettings,
    NotificationType,
)

if TYPE_CHECKING:
    from src.analytics.notification_store import NotificationStore

logger = logging.getLogger("cruxlog.analytics.reminders.cycle")

BEFORE_PERIOD_KEY = "before_period"
OVERDUE_KEY = "overdue"


@dataclass
class CycleReminderCheck:
    """Outcome of evaluating the cycle reminders for one day.

    Attributes:
        should_remind_before_period: Period is expected tomorrow.
        should_remind_overdue:       Period is late and the running cycle
                                     exceeds the overdue threshold.
        days_until_period:           Days until next_period_date (negative
                                     once it has passed).
        days_overdue:                max(0, -days_until_period).
        next_period_date:            Expected start of the next period.
        cycle_length:                Configured cycle length.
    """

    should_remind_before_period: bool
    should_remind_overdue: bool
    days_until_period: int
    days_overdue: int
    next_period_date: date
    cycle_length: int

    @property
    def should_remind(self) -> bool:
        return self.should_remind_before_period or self.should_remind_overdue

    @property
    def current_cycle_length(self) -> int:
        return self.cycle_length + self.days_overdue


def check_cycle_reminders(
    settings: CycleSettings,
    today: date | None = None,
    config: AnalyticsConfig | None = None,
) -> CycleReminderCheck:
    """Evaluate both cycle reminders for ``today``.

    Args:
        settings: The user's cycle settings.
        today:    Day to evaluate (defaults to today in settings.timezone).
        config:   Analytics config (overdue threshold).

    Returns:
        CycleReminderCheck.
    """
    cfg = config or get_analytics_config()
    today = today or today_in(settings.timezone)

    info = calculate_cycle_info(settings, today)
    days_until = days_between(today, info.next_period_date)
    days_overdue = max(0, -days_until)

    return CycleReminderCheck(
        should_remind_before_period=days_until == 1,
        should_remind_overdue=(
            days_overdue > 0
            and settings.cycle_length + days_overdue > cfg.reminders.overdue_threshold_days
        ),
        days_until_period=days_until,
        days_overdue=days_overdue,
        next_period_date=info.next_period_date,
        cycle_length=settings.cycle_length,
    )


def create_before_period_notification(check: CycleReminderCheck) -> NotificationDraft:
    return NotificationDraft(
        type=NotificationType.cycle_reminder,
        logical_key=BEFORE_PERIOD_KEY,
        title="🔄 Period Reminder",
        message=(
            f"Your period is expected tomorrow ({format_short_date(check.next_period_date)}). "
            "Time to prepare for the menstrual phase!"
        ),
        priority=NotificationPriority.medium,
        action_button=ActionButton(
            text="Mark Period Started",
            action="mark_period_started",
            data={"date": check.next_period_date.isoformat()},
        ),
    )


def create_overdue_notification(
    check: CycleReminderCheck, today: date
) -> NotificationDraft:
    plural = "s" if check.days_overdue > 1 else ""
    return NotificationDraft(
        type=NotificationType.cycle_overdue,
        logical_key=OVERDUE_KEY,
        title="⚠️ Cycle Overdue",
        message=(
            f"Your period is {check.days_overdue} day{plural} overdue "
            f"(cycle day {check.current_cycle_length}). "
            "Your period should have started by now."
        ),
        priority=NotificationPriority.high,
        action_button=ActionButton(
            text="Update Period Date",
            action="update_period_date",
            data={
                "suggested_date": today.isoformat(),
                "original_cycle_length": check.cycle_length,
                "current_cycle_length": check.current_cycle_length,
            },
        ),
    )


def create_cycle_reminder_notification(
    check: CycleReminderCheck, today: date
) -> NotificationDraft:
    """Build the most important cycle notification for ``check``.

    Overdue outranks the before-period reminder; with neither condition a
    low-priority status message is returned.
    """
    if check.should_remind_overdue:
        return create_overdue_notification(check, today)
    if check.should_remind_before_period:
        return create_before_period_notification(check)
    return NotificationDraft(
        type=NotificationType.cycle_reminder,
        logical_key="status",
        title="Cycle Update",
        message="Your cycle is progressing normally.",
        priority=NotificationPriority.low,
    )


def process_cycle_notifications(
    settings: CycleSettings | None,
    store: NotificationStore,
    notification_settings: NotificationSettings | None = None,
    now: datetime | None = None,
    config: AnalyticsConfig | None = None,
) -> list[NotificationRecord]:
    """Evaluate cycle reminders and store the ones due today.

    Each reminder is gated by its own preference flag and fires at most once
    per day; overdue is processed first.

    Args:
        settings:              Cycle settings, or None when tracking is off.
        store:                 Notification store receiving new records.
        notification_settings: User preferences (defaults apply when None).
        now:                   Evaluation time (defaults to datetime.now()).
        config:                Analytics config.

    Returns:
        Newly stored notification records.
    """
    if settings is None:
        return []

    prefs = notification_settings or NotificationSettings()
    now = now or datetime.now()
    today = now.date()
    check = check_cycle_reminders(settings, today, config)

    fired: list[NotificationRecord] = []
    if check.should_remind_overdue and prefs.late_period_notifications_enabled:
        fired += fire_once(store, create_overdue_notification(check, today), now)
    if check.should_remind_before_period and prefs.cycle_reminders_enabled:
        fired += fire_once(store, create_before_period_notification(check), now)

    if not check.should_remind:
        logger.debug("No cycle reminder due (%d days until period)", check.days_until_period)
    return fired
