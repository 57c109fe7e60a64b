"""Deduplication keys for reminder notifications.

A reminder fires at most once per calendar day.  Its identity is the
composite key (notification type, logical key, day) stored on every record,
so dedup never depends on the (translatable) title text.

Logical keys:
    cycle_reminder:     before_period
    cycle_overdue:      overdue
    workout_inactivity: inactivity
    general:            mental_practice, falls_tracking, fingerboard_test
"""

from __future__ import annotations

from datetime import date

from src.models.notifications import NotificationType


def notification_key(
    notification_type: NotificationType | str, logical_key: str, day: date
) -> str:
    """Generate the dedup key for a notification.

    Args:
        notification_type: Notification type (enum or its value).
        logical_key:       Reminder identity within the type.
        day:               Calendar day the notification belongs to.

    Returns:
        Colon-separated dedup key string.
    """
    type_value = (
        notification_type.value
        if isinstance(notification_type, NotificationType)
        else notification_type
    )
    return f"{type_value}:{logical_key}:{day.isoformat()}"
