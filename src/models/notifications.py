"""Pydantic models for in-app notifications and reminder preferences."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from src.models.base import CruxlogBase


# ---------- Enums ----------

class NotificationType(str, Enum):
    cycle_reminder = "cycle_reminder"
    cycle_overdue = "cycle_overdue"
    workout_reminder = "workout_reminder"
    workout_inactivity = "workout_inactivity"
    general = "general"


class NotificationPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class ReminderUnit(str, Enum):
    days = "days"
    weeks = "weeks"
    months = "months"


# ---------- Notifications ----------

class ActionButton(CruxlogBase):
    text: str
    action: str
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationDraft(CruxlogBase):
    """A notification as produced by a reminder evaluator.

    ``logical_key`` distinguishes reminders that share a ``type`` (several
    reminders are ``general``); together with the type and calendar day it
    forms the dedup key.
    """

    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.medium
    action_button: ActionButton | None = None
    logical_key: str = "default"


class NotificationRecord(NotificationDraft):
    id: str
    timestamp: datetime
    read: bool = False
    dedup_key: str


# ---------- Preferences ----------

class NotificationSettings(CruxlogBase):
    push_notifications_enabled: bool = False
    cycle_reminders_enabled: bool = True
    late_period_notifications_enabled: bool = True
    workout_inactivity_enabled: bool = False
    workout_inactivity_days: int = Field(default=3, ge=1)
    activity_reminders_enabled: bool = True
    test_reminder_enabled: bool = False
    test_reminder_interval: int | None = Field(default=None, gt=0)
    test_reminder_unit: ReminderUnit | None = None
