"""Tests for the daily reminder scheduler."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from src.analytics.config_loader import AnalyticsConfig
from src.analytics.notification_store import NotificationStore
from src.analytics.reminders.scheduler import (
    ReminderJob,
    ReminderScheduler,
    schedule_daily_activity_check,
    schedule_daily_cycle_check,
    schedule_daily_test_reminder_check,
    schedule_daily_workout_inactivity_check,
)
from src.analytics.tests.conftest import days_ago, make_test_result, make_workout
from src.models.cycle import CycleSettings
from src.models.notifications import NotificationSettings, NotificationType
from src.models.training import WorkoutRecord

MORNING = datetime(2026, 3, 28, 8, 59)
CHECKPOINT = datetime(2026, 3, 28, 9, 0)


class RecordingJob:
    """Callable job body that records the times it ran."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[datetime] = []
        self.fail = fail

    def __call__(self, now: datetime) -> list:
        self.calls.append(now)
        if self.fail:
            raise RuntimeError("provider unavailable")
        return []


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


async def _let_tasks_run() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Job due-ness
# ---------------------------------------------------------------------------


class TestReminderJob:
    def test_not_due_before_checkpoint(self) -> None:
        job = ReminderJob("cycle", 9, RecordingJob())
        assert not job.is_due(MORNING)

    def test_due_at_checkpoint(self) -> None:
        assert ReminderJob("cycle", 9, RecordingJob()).is_due(CHECKPOINT)

    def test_missed_checkpoint_still_due(self) -> None:
        assert ReminderJob("cycle", 9, RecordingJob()).is_due(CHECKPOINT.replace(hour=14))

    def test_not_due_twice_same_day(self) -> None:
        job = ReminderJob("cycle", 9, RecordingJob(), last_run_date=CHECKPOINT.date())
        assert not job.is_due(CHECKPOINT.replace(hour=23))
        assert job.is_due(CHECKPOINT + timedelta(days=1))


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class TestRunIfDue:
    @pytest.mark.asyncio
    async def test_runs_once_per_day(self, analytics_config: AnalyticsConfig) -> None:
        body = RecordingJob()
        job = ReminderJob("cycle", 9, body)
        scheduler = ReminderScheduler(config=analytics_config)

        assert await scheduler.run_if_due(job, MORNING) is None
        assert await scheduler.run_if_due(job, CHECKPOINT) == []
        assert await scheduler.run_if_due(job, CHECKPOINT + timedelta(minutes=5)) is None
        assert await scheduler.run_if_due(job, CHECKPOINT + timedelta(days=1)) == []
        assert body.calls == [CHECKPOINT, CHECKPOINT + timedelta(days=1)]

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_day_marked(
        self, analytics_config: AnalyticsConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        body = RecordingJob(fail=True)
        job = ReminderJob("activity", 10, body)
        scheduler = ReminderScheduler(config=analytics_config)

        fired = await scheduler.run_if_due(job, CHECKPOINT.replace(hour=10))
        assert fired == []
        assert job.last_run_date == CHECKPOINT.date()
        assert "Reminder job activity failed" in caplog.text
        assert await scheduler.run_if_due(job, CHECKPOINT.replace(hour=11)) is None

    @pytest.mark.asyncio
    async def test_async_job_body(self, analytics_config: AnalyticsConfig) -> None:
        calls: list[datetime] = []

        async def body(now: datetime) -> list:
            calls.append(now)
            return []

        scheduler = ReminderScheduler(config=analytics_config)
        await scheduler.run_if_due(ReminderJob("retest", 10, body), CHECKPOINT.replace(hour=10))
        assert calls == [CHECKPOINT.replace(hour=10)]

    def test_poll_interval_from_config(self, analytics_config: AnalyticsConfig) -> None:
        assert ReminderScheduler(config=analytics_config).poll_interval_seconds == 300
        assert ReminderScheduler(5, config=analytics_config).poll_interval_seconds == 5


class TestSchedule:
    @pytest.mark.asyncio
    async def test_immediate_run_does_not_consume_checkpoint(
        self, analytics_config: AnalyticsConfig
    ) -> None:
        clock = MutableClock(CHECKPOINT)
        scheduler = ReminderScheduler(poll_interval_seconds=3600, clock=clock, config=analytics_config)
        body = RecordingJob()
        job = ReminderJob("cycle", 9, body)

        handle = scheduler.schedule(job, run_immediately=True)
        await _let_tasks_run()
        handle.cancel()
        await _let_tasks_run()

        # immediate run + the checkpoint run of the same poll
        assert body.calls == [CHECKPOINT, CHECKPOINT]
        assert job.last_run_date == CHECKPOINT.date()
        assert handle.cancelled

    @pytest.mark.asyncio
    async def test_no_immediate_run_before_checkpoint(
        self, analytics_config: AnalyticsConfig
    ) -> None:
        scheduler = ReminderScheduler(
            poll_interval_seconds=3600, clock=MutableClock(MORNING), config=analytics_config
        )
        body = RecordingJob()
        scheduler.schedule(ReminderJob("cycle", 9, body), run_immediately=False)
        await _let_tasks_run()
        scheduler.cancel_all()
        await _let_tasks_run()
        assert body.calls == []
        assert scheduler.scheduled == []

    @pytest.mark.asyncio
    async def test_polling_picks_up_checkpoint(self, analytics_config: AnalyticsConfig) -> None:
        clock = MutableClock(MORNING)
        scheduler = ReminderScheduler(poll_interval_seconds=0.01, clock=clock, config=analytics_config)
        body = RecordingJob()
        scheduler.schedule(ReminderJob("cycle", 9, body), run_immediately=False)

        await asyncio.sleep(0.03)
        assert body.calls == []
        clock.now = CHECKPOINT
        await asyncio.sleep(0.05)
        scheduler.cancel_all()
        await _let_tasks_run()
        assert body.calls == [CHECKPOINT]


# ---------------------------------------------------------------------------
# Family builders
# ---------------------------------------------------------------------------


class TestFamilyBuilders:
    @pytest.mark.asyncio
    async def test_builders_use_configured_checkpoints(
        self,
        store: NotificationStore,
        cycle_settings: CycleSettings,
        analytics_config: AnalyticsConfig,
    ) -> None:
        scheduler = ReminderScheduler(
            poll_interval_seconds=3600, clock=MutableClock(MORNING), config=analytics_config
        )
        handles = [
            schedule_daily_cycle_check(scheduler, store, lambda: cycle_settings, run_immediately=False),
            schedule_daily_workout_inactivity_check(scheduler, store, list, run_immediately=False),
            schedule_daily_activity_check(scheduler, store, list, run_immediately=False),
            schedule_daily_test_reminder_check(scheduler, store, list, run_immediately=False),
        ]
        assert [(h.job.name, h.job.checkpoint_hour) for h in handles] == [
            ("cycle", 9),
            ("inactivity", 9),
            ("activity", 10),
            ("retest", 10),
        ]
        scheduler.cancel_all()
        await _let_tasks_run()

    @pytest.mark.asyncio
    async def test_cycle_check_fires_into_store(
        self,
        store: NotificationStore,
        cycle_settings: CycleSettings,
        analytics_config: AnalyticsConfig,
    ) -> None:
        clock = MutableClock(CHECKPOINT)  # day before the expected period
        scheduler = ReminderScheduler(poll_interval_seconds=3600, clock=clock, config=analytics_config)
        schedule_daily_cycle_check(scheduler, store, lambda: cycle_settings)
        await _let_tasks_run()
        scheduler.cancel_all()
        await _let_tasks_run()

        messages = store.get_messages()
        assert len(messages) == 1
        assert messages[0].type == NotificationType.cycle_reminder

    @pytest.mark.asyncio
    async def test_providers_read_fresh_data(
        self, store: NotificationStore, analytics_config: AnalyticsConfig
    ) -> None:
        workouts: list[WorkoutRecord] = []
        prefs = NotificationSettings(workout_inactivity_enabled=True, workout_inactivity_days=3)
        scheduler = ReminderScheduler(config=analytics_config)
        handle = schedule_daily_workout_inactivity_check(
            scheduler, store, lambda: workouts, lambda: prefs, run_immediately=False
        )
        handle.cancel()
        await _let_tasks_run()

        now = datetime(2026, 3, 15, 9, 30)
        assert await scheduler.run_if_due(handle.job, now) == []

        # data added after scheduling is seen by the next day's run
        workouts.append(make_workout(days_ago(5)))
        fired = await scheduler.run_if_due(handle.job, now + timedelta(days=1))
        assert fired is not None and len(fired) == 1

    @pytest.mark.asyncio
    async def test_retest_builder(
        self, store: NotificationStore, analytics_config: AnalyticsConfig
    ) -> None:
        prefs = NotificationSettings(
            test_reminder_enabled=True, test_reminder_interval=1, test_reminder_unit="weeks"
        )
        results = [make_test_result(days_ago(10).date())]
        scheduler = ReminderScheduler(config=analytics_config)
        handle = schedule_daily_test_reminder_check(
            scheduler, store, lambda: results, lambda: prefs, run_immediately=False
        )
        handle.cancel()
        await _let_tasks_run()
        fired = await scheduler.run_if_due(handle.job, datetime(2026, 3, 15, 10, 0))
        assert fired is not None and fired[0].logical_key == "fingerboard_test"

    @pytest.mark.asyncio
    async def test_saved_preferences_used_without_provider(
        self, store: NotificationStore, analytics_config: AnalyticsConfig
    ) -> None:
        store.save_settings(
            NotificationSettings(
                test_reminder_enabled=True, test_reminder_interval=1, test_reminder_unit="weeks"
            )
        )
        results = [make_test_result(days_ago(10).date())]
        scheduler = ReminderScheduler(config=analytics_config)
        handle = schedule_daily_test_reminder_check(
            scheduler, store, lambda: results, run_immediately=False
        )
        handle.cancel()
        await _let_tasks_run()

        fired = await scheduler.run_if_due(handle.job, datetime(2026, 3, 15, 10, 0))
        assert fired is not None and len(fired) == 1

        # turning the reminder off in the store is seen by the next run
        store.save_settings(NotificationSettings())
        store.clear_all_messages()
        assert await scheduler.run_if_due(handle.job, datetime(2026, 3, 16, 10, 0)) == []
