"""Daily reminder scheduler.

Each reminder family runs as a ``ReminderJob`` with a local checkpoint hour:
    cycle:      09:00
    inactivity: 09:00
    activity:   10:00
    retest:     10:00

A job is polled every ``poll_interval_seconds`` (5 minutes by default) and
runs once per calendar day, on the first poll at or after its checkpoint.
Missed checkpoints are caught up on the next poll, so a process started at
14:00 still runs that day's checks.  Jobs pull fresh data through provider
callables on every run, never from values captured at schedule time.
Reminder preferences come from the optional settings provider, falling back
to the preferences saved in the notification store.

The notification store's dedup index guarantees at most one notification
per (type, logical key, day) even when a job runs more than once.

Usage::

    scheduler = ReminderScheduler()
    schedule_daily_cycle_check(scheduler, store, load_cycle_settings)
    ...
    scheduler.cancel_all()
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Sequence

from src.analytics.config_loader import AnalyticsConfig, get_analytics_config
from src.analytics.reminders.activity import process_activity_notifications
from src.analytics.reminders.cycle import process_cycle_notifications
from src.analytics.reminders.inactivity import process_workout_inactivity_notifications
from src.analytics.reminders.retest import process_test_reminder_notifications
from src.models.cycle import CycleSettings
from src.models.notifications import NotificationRecord, NotificationSettings
from src.models.training import FingerboardTestResult, WorkoutRecord

if TYPE_CHECKING:
    from src.analytics.notification_store import NotificationStore

logger = logging.getLogger("cruxlog.analytics.reminders.scheduler")


@dataclass
class ReminderJob:
    """A reminder family evaluated once per day.

    Attributes:
        name:            Family name used in logs.
        checkpoint_hour: Local hour from which the job is due.
        run:             Callable(now) returning the fired records; may be
                         a coroutine function.
        last_run_date:   Day the job last ran at its checkpoint.
    """

    name: str
    checkpoint_hour: int
    run: Callable[[datetime], Any]
    last_run_date: date | None = None

    def is_due(self, now: datetime) -> bool:
        """Return True if the checkpoint has passed and today has not run yet."""
        return now.hour >= self.checkpoint_hour and self.last_run_date != now.date()


@dataclass
class ScheduledCheck:
    """Handle for a polling job; ``cancel()`` stops it."""

    job: ReminderJob
    task: asyncio.Task | None = field(default=None, repr=False)

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()

    @property
    def cancelled(self) -> bool:
        return self.task is None or self.task.done()


class ReminderScheduler:
    """Poll reminder jobs and run each once per day at its checkpoint.

    All polling happens on the running asyncio event loop; ``schedule`` must
    be called from inside it.
    """

    def __init__(
        self,
        poll_interval_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
        config: AnalyticsConfig | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            poll_interval_seconds: Seconds between polls (defaults to config).
            clock:                 Source of local "now" (defaults to datetime.now).
            config:                Analytics config.
        """
        self._config = config or get_analytics_config()
        self._poll_interval = (
            poll_interval_seconds
            if poll_interval_seconds is not None
            else self._config.scheduler.poll_interval_seconds
        )
        self._clock = clock or datetime.now
        self._scheduled: list[ScheduledCheck] = []

    @property
    def config(self) -> AnalyticsConfig:
        return self._config

    @property
    def poll_interval_seconds(self) -> float:
        return self._poll_interval

    @property
    def scheduled(self) -> list[ScheduledCheck]:
        return list(self._scheduled)

    async def execute(self, job: ReminderJob, now: datetime | None = None) -> list[NotificationRecord]:
        """Run ``job`` unconditionally, logging and swallowing its errors.

        Returns:
            Records fired by the job (empty on error).
        """
        now = now or self._clock()
        try:
            result = job.run(now)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.exception("Reminder job %s failed", job.name)
            return []

        fired = list(result or [])
        if fired:
            logger.info("Reminder job %s fired %d notifications", job.name, len(fired))
        else:
            logger.debug("Reminder job %s: nothing due", job.name)
        return fired

    async def run_if_due(
        self, job: ReminderJob, now: datetime | None = None
    ) -> list[NotificationRecord] | None:
        """Run ``job`` if its checkpoint has passed and it has not run today.

        The day is marked as run even when the job raises, so a failing job
        is retried tomorrow rather than on every poll.

        Returns:
            Fired records, or None if the job was not due.
        """
        now = now or self._clock()
        if not job.is_due(now):
            return None
        job.last_run_date = now.date()
        return await self.execute(job, now)

    async def _poll(self, job: ReminderJob, run_immediately: bool) -> None:
        if run_immediately:
            await self.execute(job)
        while True:
            await self.run_if_due(job)
            await asyncio.sleep(self._poll_interval)

    def schedule(self, job: ReminderJob, run_immediately: bool = True) -> ScheduledCheck:
        """Start polling ``job`` on the running event loop.

        Args:
            job:             The job to poll.
            run_immediately: Evaluate once right away.  This does not use up
                             the day's checkpoint run.

        Returns:
            ScheduledCheck handle.
        """
        task = asyncio.get_running_loop().create_task(
            self._poll(job, run_immediately), name=f"reminder:{job.name}"
        )
        handle = ScheduledCheck(job=job, task=task)
        self._scheduled.append(handle)
        logger.info(
            "Scheduled %s reminders at %02d:00 (poll every %ss)",
            job.name, job.checkpoint_hour, self._poll_interval,
        )
        return handle

    def cancel_all(self) -> None:
        for handle in self._scheduled:
            handle.cancel()
        self._scheduled.clear()


# ---------------------------------------------------------------------------
# Family builders
# ---------------------------------------------------------------------------


def _current_settings(
    provider: Callable[[], NotificationSettings | None] | None,
    store: NotificationStore,
) -> NotificationSettings:
    """Preferences from ``provider``, else the ones saved in the store."""
    settings = provider() if provider else None
    return settings or store.get_settings()


def schedule_daily_cycle_check(
    scheduler: ReminderScheduler,
    store: NotificationStore,
    get_cycle_settings: Callable[[], CycleSettings | None],
    get_notification_settings: Callable[[], NotificationSettings | None] | None = None,
    run_immediately: bool = True,
) -> ScheduledCheck:
    """Schedule the before-period and overdue reminders."""
    cfg = scheduler.config

    def run(now: datetime) -> list[NotificationRecord]:
        return process_cycle_notifications(
            get_cycle_settings(),
            store,
            _current_settings(get_notification_settings, store),
            now=now,
            config=cfg,
        )

    job = ReminderJob("cycle", cfg.scheduler.checkpoint("cycle"), run)
    return scheduler.schedule(job, run_immediately)


def schedule_daily_workout_inactivity_check(
    scheduler: ReminderScheduler,
    store: NotificationStore,
    get_workouts: Callable[[], Sequence[WorkoutRecord]],
    get_notification_settings: Callable[[], NotificationSettings | None] | None = None,
    run_immediately: bool = True,
) -> ScheduledCheck:
    """Schedule the workout inactivity reminder."""
    cfg = scheduler.config

    def run(now: datetime) -> list[NotificationRecord]:
        return process_workout_inactivity_notifications(
            get_workouts(),
            _current_settings(get_notification_settings, store),
            store,
            now=now,
        )

    job = ReminderJob("inactivity", cfg.scheduler.checkpoint("inactivity"), run)
    return scheduler.schedule(job, run_immediately)


def schedule_daily_activity_check(
    scheduler: ReminderScheduler,
    store: NotificationStore,
    get_workouts: Callable[[], Sequence[WorkoutRecord]],
    get_notification_settings: Callable[[], NotificationSettings | None] | None = None,
    run_immediately: bool = True,
) -> ScheduledCheck:
    """Schedule the mental-practice and falls nudges."""
    cfg = scheduler.config

    def run(now: datetime) -> list[NotificationRecord]:
        return process_activity_notifications(
            get_workouts(),
            store,
            _current_settings(get_notification_settings, store),
            now=now,
            config=cfg,
        )

    job = ReminderJob("activity", cfg.scheduler.checkpoint("activity"), run)
    return scheduler.schedule(job, run_immediately)


def schedule_daily_test_reminder_check(
    scheduler: ReminderScheduler,
    store: NotificationStore,
    get_test_results: Callable[[], Sequence[FingerboardTestResult]],
    get_notification_settings: Callable[[], NotificationSettings | None] | None = None,
    run_immediately: bool = True,
) -> ScheduledCheck:
    """Schedule the fingerboard retest reminder."""
    cfg = scheduler.config

    def run(now: datetime) -> list[NotificationRecord]:
        return process_test_reminder_notifications(
            get_test_results(),
            _current_settings(get_notification_settings, store),
            store,
            now=now,
            config=cfg,
        )

    job = ReminderJob("retest", cfg.scheduler.checkpoint("retest"), run)
    return scheduler.schedule(job, run_immediately)
