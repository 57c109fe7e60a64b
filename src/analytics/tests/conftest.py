"""Shared fixtures and record builders for analytics and reminder tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from itertools import count

import pytest

from src.analytics.config_loader import AnalyticsConfig, load_analytics_config
from src.analytics.notification_store import InMemoryBackend, NotificationStore
from src.models.cycle import CycleSettings
from src.models.training import (
    ClimbSection,
    EventRecord,
    EventType,
    FingerboardTestResult,
    MentalPracticeType,
    MentalState,
    Tag,
    TrainingVolume,
    WorkoutRecord,
    WorkoutType,
)

# Fixed evaluation time: Sunday 2026-03-15, 12:00 local
NOW = datetime(2026, 3, 15, 12, 0)
TODAY = NOW.date()

_ids = count(1)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_workout(
    start_time: datetime,
    workout_type: WorkoutType = WorkoutType.BOULDERING,
    *,
    tags: list[Tag] | None = None,
    training_volume: TrainingVolume | None = None,
    focus_level: int | None = None,
    mental_practice_type: MentalPracticeType | None = None,
    mental_state: MentalState | None = None,
) -> WorkoutRecord:
    return WorkoutRecord(
        id=f"w{next(_ids)}",
        type=workout_type,
        start_time=start_time,
        training_volume=training_volume,
        focus_level=focus_level,
        mental_practice_type=mental_practice_type,
        mental_state=mental_state,
        tags=tags or [],
    )


def days_ago(days: int, hour: int = 18) -> datetime:
    """A timestamp ``days`` calendar days before NOW at ``hour``:00."""
    return (NOW - timedelta(days=days)).replace(hour=hour, minute=0)


def make_mental_session(
    start_time: datetime,
    focus_level: int | None = None,
    practice_type: MentalPracticeType | None = MentalPracticeType.MEDITATION,
) -> WorkoutRecord:
    return make_workout(
        start_time,
        WorkoutType.MENTAL_PRACTICE,
        focus_level=focus_level,
        mental_practice_type=practice_type,
    )


def make_fall_session(start_time: datetime, section_falls: int = 1) -> WorkoutRecord:
    sections = [ClimbSection(took_fall=True) for _ in range(section_falls)]
    return make_workout(
        start_time,
        WorkoutType.LEAD_ROCK,
        mental_state=MentalState(took_falls=False, climb_sections=sections),
    )


def make_injury(day: date) -> EventRecord:
    return EventRecord(id=f"e{next(_ids)}", type=EventType.INJURY, date=day, title="Pulley")


def make_test_result(day: date) -> FingerboardTestResult:
    return FingerboardTestResult(id=f"t{next(_ids)}", date=day, protocol_id="max-hang")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def analytics_config() -> AnalyticsConfig:
    """Load the real analytics config for tests."""
    return load_analytics_config()


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend: InMemoryBackend) -> NotificationStore:
    return NotificationStore(backend, storage_key="notification-messages", clock=lambda: NOW)


@pytest.fixture
def cycle_settings() -> CycleSettings:
    """28-day cycle that started on 2026-03-01 (NOW is cycle day 15)."""
    return CycleSettings(cycle_length=28, last_period_start_date=date(2026, 3, 1))


@pytest.fixture
def tags() -> list[Tag]:
    return [
        Tag(id="tag-crimp", name="Crimps", color="#ff0000"),
        Tag(id="tag-slab", name="Slab", color="#00ff00"),
    ]
