"""Helpers shared by the reminder evaluators."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from src.models.notifications import NotificationDraft, NotificationRecord

if TYPE_CHECKING:
    from datetime import datetime

    from src.analytics.notification_store import NotificationStore

logger = logging.getLogger("cruxlog.analytics.reminders")


def days_between(earlier: date, later: date) -> int:
    """Whole calendar days from ``earlier`` to ``later``."""
    return (later - earlier).days


def days_text(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


def format_short_date(day: date) -> str:
    """Format like ``Tue, Jan 2``."""
    return f"{day:%a}, {day:%b} {day.day}"


def fire_once(
    store: NotificationStore, draft: NotificationDraft, now: datetime
) -> list[NotificationRecord]:
    """Append ``draft`` unless it already fired today.

    Returns:
        A one-element list with the new record, or an empty list.
    """
    record = store.add_once(draft, now=now)
    if record is None:
        return []
    logger.info("Fired %s reminder (%s)", draft.type.value, draft.logical_key)
    return [record]
