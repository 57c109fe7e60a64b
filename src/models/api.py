"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from src.models.base import CruxlogBase, to_local_naive
from src.models.cycle import CycleSettings
from src.models.notifications import NotificationRecord, NotificationSettings
from src.models.training import EventRecord, FingerboardTestResult, Tag, WorkoutRecord


class _EvaluatedAt(CruxlogBase):
    """Optional evaluation time; the server clock is used when omitted."""

    now: datetime | None = None

    @field_validator("now")
    @classmethod
    def _normalise_now(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value) if value is not None else None


# ---------- Statistics ----------

class StatisticsRequest(_EvaluatedAt):
    workouts: list[WorkoutRecord] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    events: list[EventRecord] = Field(default_factory=list)
    timeframe: str = "1month"
    custom_start: datetime | None = None
    custom_end: datetime | None = None
    cycle_settings: CycleSettings | None = None
    notification_settings: NotificationSettings | None = None

    @field_validator("custom_start", "custom_end")
    @classmethod
    def _normalise_range(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value) if value is not None else None

    @model_validator(mode="after")
    def _complete_range(self) -> StatisticsRequest:
        if (self.custom_start is None) != (self.custom_end is None):
            raise ValueError("custom_start and custom_end must be given together")
        return self


class StatisticsResponse(CruxlogBase):
    statistics: dict[str, Any]
    reminders_fired: int = 0


# ---------- Cycle ----------

class CycleInfoRequest(CruxlogBase):
    settings: CycleSettings
    target_date: date | None = None


class CycleInfoRead(CruxlogBase):
    current_day: int
    phase: str
    next_period_date: date
    next_ovulation_date: date
    is_in_fertile_window: bool
    recommendations: list[str]


# ---------- Reminders ----------

class ReminderRunRequest(_EvaluatedAt):
    workouts: list[WorkoutRecord] = Field(default_factory=list)
    test_results: list[FingerboardTestResult] = Field(default_factory=list)
    cycle_settings: CycleSettings | None = None
    notification_settings: NotificationSettings | None = None


class ReminderRunResponse(CruxlogBase):
    fired: list[NotificationRecord]
    count: int


# ---------- Notifications ----------

class UnreadCountRead(CruxlogBase):
    unread: int
    total: int
