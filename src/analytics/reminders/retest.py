"""Periodic fingerboard retest reminder.

The retest interval is entered in days, weeks or months.  Months are
converted at a fixed 30 days each (``reminders.retest.days_per_month``), so
month intervals drift against the calendar.
"""

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
    ReminderUnit,
)
from src.models.training import FingerboardTestResult

if TYPE_CHECKING:
    from src.analytics.notification_store import NotificationStore

logger = logging.getLogger("cruxlog.analytics.reminders.retest")

RETEST_KEY = "fingerboard_test"


@dataclass
class TestReminderCheck:
    should_remind: bool
    days_since_last_test: int
    last_test_date: date | None
    interval_days: int


def interval_to_days(
    interval: int,
    unit: ReminderUnit | str,
    config: AnalyticsConfig | None = None,
) -> int:
    """Convert a reminder interval to days.

    Args:
        interval: Number of units.
        unit:     ``days``, ``weeks`` or ``months``.
        config:   Analytics config (days per week / month).

    Returns:
        Interval in days.

    Raises:
        ValueError: If the unit is unknown.
    """
    rm = (config or get_analytics_config()).reminders
    unit = ReminderUnit(unit)
    if unit == ReminderUnit.weeks:
        return interval * rm.days_per_week
    if unit == ReminderUnit.months:
        return interval * rm.days_per_month
    return interval


def check_test_reminder(
    test_results: Sequence[FingerboardTestResult],
    interval: int,
    unit: ReminderUnit | str,
    today: date | None = None,
    config: AnalyticsConfig | None = None,
) -> TestReminderCheck:
    """Compare the days since the latest test with the retest interval."""
    interval_days = interval_to_days(interval, unit, config)
    if not test_results:
        return TestReminderCheck(
            should_remind=False,
            days_since_last_test=0,
            last_test_date=None,
            interval_days=interval_days,
        )

    today = today or date.today()
    last_test_date = max(r.date for r in test_results)
    days_since = days_between(last_test_date, today)

    return TestReminderCheck(
        should_remind=days_since >= interval_days,
        days_since_last_test=days_since,
        last_test_date=last_test_date,
        interval_days=interval_days,
    )


def create_test_reminder_notification(check: TestReminderCheck) -> NotificationDraft:
    return NotificationDraft(
        type=NotificationType.general,
        logical_key=RETEST_KEY,
        title="📊 Test Reminder",
        message=(
            f"You haven't tested in {days_text(check.days_since_last_test)}. "
            "Time to track your progress!"
        ),
        priority=NotificationPriority.medium,
        action_button=ActionButton(text="Perform Test", action="perform_test"),
    )


def process_test_reminder_notifications(
    test_results: Sequence[FingerboardTestResult],
    settings: NotificationSettings,
    store: NotificationStore,
    now: datetime | None = None,
    config: AnalyticsConfig | None = None,
) -> list[NotificationRecord]:
    """Store a retest reminder if enabled, configured and due today."""
    if (
        not settings.test_reminder_enabled
        or not settings.test_reminder_interval
        or settings.test_reminder_unit is None
    ):
        return []

    now = now or datetime.now()
    check = check_test_reminder(
        test_results,
        settings.test_reminder_interval,
        settings.test_reminder_unit,
        now.date(),
        config,
    )
    if not check.should_remind:
        logger.debug(
            "No retest reminder due (%d of %d days)",
            check.days_since_last_test, check.interval_days,
        )
        return []
    return fire_once(store, create_test_reminder_notification(check), now)
