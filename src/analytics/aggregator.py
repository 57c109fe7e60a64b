"""Training statistics aggregator.

Turns a user's workout and event history into the numbers shown on the
dashboard and statistics pages:

- Totals, weekly frequency, most active weekday / hour, streaks
- Per-workout-type and per-tag breakdowns
- Training-volume histogram (TR1–TR5)
- Mental-practice session stats
- Falls taken during climbing sessions
- Injuries bucketed by menstrual cycle phase and cycle day

Every result is a pure function of the input records, the requested window
and the ``now`` snapshot the aggregator was created with.  Ratios with an
empty denominator are 0; "days since" metrics use ``math.inf`` to mean
"never", which is a display sentinel and must not be used in arithmetic.
"""

from __future__ import annotations

import calendar
import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from src.analytics.config_loader import TIMEFRAMES, AnalyticsConfig, get_analytics_config
from src.analytics.cycle.phase_calculator import calculate_cycle_info, phase_for_day
from src.models.cycle import CyclePhase, CycleSettings
from src.models.training import (
    CLIMBING_TYPES,
    EventRecord,
    EventType,
    MentalPracticeType,
    Tag,
    TrainingVolume,
    WorkoutRecord,
    WorkoutType,
)

logger = logging.getLogger("cruxlog.analytics.aggregator")

_WEEK = timedelta(days=7)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Months subtracted from "now" for each calendar-month timeframe
_MONTH_WINDOWS = {"1month": 1, "3months": 3, "6months": 6, "1year": 12}

NOT_AVAILABLE = "N/A"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeRange:
    """Inclusive ``[start, end]`` window over workout timestamps."""

    start: datetime
    end: datetime

    @property
    def weeks(self) -> int:
        """Number of (partial) weeks covered, never less than 1."""
        return max(1, math.ceil((self.end - self.start) / _WEEK))

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass
class OverallStats:
    """Headline numbers for the selected window.

    Attributes:
        total_workouts:           Workouts inside the window.
        average_workouts_per_week: total / weeks in the window (0.1 precision).
        workouts_this_month:      Workouts in the current calendar month.
        most_active_day:          Weekday name with the most workouts.
        most_active_time:         Hour with the most workouts, e.g. ``"18:00"``.
        current_streak:           Consecutive days up to and including today.
        longest_streak:           Longest run of consecutive workout days.
        last_workout:             Timestamp of the latest workout.
    """

    total_workouts: int = 0
    average_workouts_per_week: float = 0.0
    workouts_this_month: int = 0
    most_active_day: str = NOT_AVAILABLE
    most_active_time: str = NOT_AVAILABLE
    current_streak: int = 0
    longest_streak: int = 0
    last_workout: datetime | None = None


@dataclass
class WorkoutTypeStats:
    type: WorkoutType
    count: int
    percentage: int
    frequency: float
    last_workout: datetime | None = None


@dataclass
class TagStats:
    tag: Tag
    count: int
    percentage: int
    frequency: float
    last_used: datetime | None = None
    associated_types: list[WorkoutType] = field(default_factory=list)


@dataclass
class TrainingVolumeStats:
    volume: TrainingVolume
    count: int
    percentage: int


@dataclass
class PracticeTypeCounts:
    meditation: int = 0
    reflecting: int = 0
    other: int = 0


@dataclass
class MentalSessionStats:
    """Mental-practice sessions in the window.

    ``days_since_last_session`` is ``math.inf`` when there are no sessions.
    """

    total_sessions: int = 0
    last_session: datetime | None = None
    days_since_last_session: float = math.inf
    average_focus_level: float = 0.0
    practice_types: PracticeTypeCounts = field(default_factory=PracticeTypeCounts)


@dataclass
class FallsStats:
    """Falls taken during climbing sessions.

    A workout-level ``took_falls`` flag and every climb section with
    ``took_fall`` each count as one fall, so a single session can contribute
    several falls.
    """

    total_falls: int = 0
    last_fall: datetime | None = None
    days_since_last_fall: float = math.inf
    falls_per_session: float = 0.0
    climbing_sessions_with_falls: int = 0
    total_climbing_sessions: int = 0


@dataclass
class InjuryDayCount:
    cycle_day: int
    count: int
    phase: CyclePhase


def _empty_phase_counts() -> dict[CyclePhase, int]:
    return {phase: 0 for phase in CyclePhase}


@dataclass
class InjuryCycleStats:
    """Injury events bucketed by the cycle phase they happened in.

    All-zero (with an empty per-day histogram) when no cycle settings are
    available.
    """

    total_injuries: int = 0
    injuries_by_phase: dict[CyclePhase, int] = field(default_factory=_empty_phase_counts)
    injuries_by_cycle_day: list[InjuryDayCount] = field(default_factory=list)
    last_injury: date | None = None
    days_since_last_injury: float = math.inf


@dataclass
class StatisticsData:
    time_range: TimeRange
    overall: OverallStats
    workout_types: list[WorkoutTypeStats]
    tags: list[TagStats]
    training_volumes: list[TrainingVolumeStats]
    mental_sessions: MentalSessionStats
    falls: FallsStats
    injury_cycle: InjuryCycleStats


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _round_half_up(value: float, digits: int = 0) -> float:
    """Round with .5 going up (``round()`` would go to the even neighbour)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _percentage(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(_round_half_up(count / total * 100))


def _per_week(count: int, weeks: int) -> float:
    if weeks <= 0:
        return 0.0
    return _round_half_up(count / weeks, 1)


def _subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping to the last valid day."""
    year_offset, month_index = divmod(moment.month - 1 - months, 12)
    year = moment.year + year_offset
    month = month_index + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _first_max(counts: Counter) -> object | None:
    """Return the key with the highest count, earliest-inserted on ties."""
    best_key = None
    best_count = 0
    for key, count in counts.items():
        if count > best_count:
            best_key, best_count = key, count
    return best_key


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class StatisticsAggregator:
    """Compute workout statistics relative to a fixed ``now``.

    Usage::

        aggregator = StatisticsAggregator(now=datetime(2026, 3, 1, 12, 0))
        stats = aggregator.calculate_statistics(
            workouts, tags, "1month", events=events, cycle_settings=settings,
        )
        print(stats.overall.current_streak)
    """

    def __init__(
        self,
        now: datetime | None = None,
        config: AnalyticsConfig | None = None,
    ) -> None:
        self._now = now or datetime.now()
        self._config = config or get_analytics_config()

    @property
    def now(self) -> datetime:
        return self._now

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------

    def get_time_range(
        self, timeframe: str, custom_range: TimeRange | None = None
    ) -> TimeRange:
        """Map a named timeframe to an inclusive window ending today.

        Args:
            timeframe:    One of ``1week``, ``1month``, ``3months``,
                          ``6months``, ``1year``, ``custom``.
            custom_range: Explicit window for ``custom``.

        Returns:
            TimeRange whose end is the last instant of today.

        Raises:
            ValueError: If the timeframe is unknown.
        """
        now = self._now
        end = now.replace(hour=23, minute=59, second=59, microsecond=999999)

        if timeframe == "custom":
            if custom_range is not None:
                return custom_range
            days = self._config.statistics.custom_range_default_days
            return TimeRange(start=now - timedelta(days=days), end=end)

        if timeframe == "1week":
            start = now - _WEEK
        elif timeframe in _MONTH_WINDOWS:
            start = _subtract_months(now, _MONTH_WINDOWS[timeframe])
        else:
            raise ValueError(f"Unknown timeframe {timeframe!r}; expected one of {TIMEFRAMES}")

        start = start.replace(hour=0, minute=0, second=0, microsecond=0)
        return TimeRange(start=start, end=end)

    def filter_workouts_by_time_range(
        self, workouts: Sequence[WorkoutRecord], time_range: TimeRange
    ) -> list[WorkoutRecord]:
        return [w for w in workouts if time_range.contains(w.start_time)]

    def filter_events_by_time_range(
        self, events: Sequence[EventRecord], time_range: TimeRange
    ) -> list[EventRecord]:
        return [e for e in events if time_range.contains(datetime.combine(e.date, time.min))]

    # ------------------------------------------------------------------
    # Overall
    # ------------------------------------------------------------------

    def calculate_overall_stats(
        self, workouts: Sequence[WorkoutRecord], time_range: TimeRange
    ) -> OverallStats:
        """Compute totals, weekly average, most active slots and streaks.

        Args:
            workouts:   Workouts already filtered to ``time_range``.
            time_range: The window the workouts were filtered with.

        Returns:
            OverallStats; zeros and ``"N/A"`` for an empty list.
        """
        if not workouts:
            return OverallStats()

        total = len(workouts)

        month_start = self._now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        days_in_month = calendar.monthrange(month_start.year, month_start.month)[1]
        next_month_start = month_start + timedelta(days=days_in_month)
        this_month = sum(1 for w in workouts if month_start <= w.start_time < next_month_start)

        day_counts: Counter = Counter()
        hour_counts: Counter = Counter()
        for workout in workouts:
            day_counts[_WEEKDAYS[workout.start_time.weekday()]] += 1
            hour_counts[workout.start_time.hour] += 1

        most_active_day = _first_max(day_counts)
        most_active_hour = _first_max(hour_counts)

        current_streak, longest_streak = self.calculate_streaks(workouts)

        return OverallStats(
            total_workouts=total,
            average_workouts_per_week=_per_week(total, time_range.weeks),
            workouts_this_month=this_month,
            most_active_day=most_active_day or NOT_AVAILABLE,
            most_active_time=(
                f"{most_active_hour}:00" if most_active_hour is not None else NOT_AVAILABLE
            ),
            current_streak=current_streak,
            longest_streak=longest_streak,
            last_workout=max(w.start_time for w in workouts),
        )

    def calculate_streaks(self, workouts: Sequence[WorkoutRecord]) -> tuple[int, int]:
        """Return ``(current_streak, longest_streak)`` in calendar days.

        The current streak counts back from today (inclusive) and stops at
        the first day without a workout.  The longest streak is the longest
        run of consecutive dates anywhere in ``workouts``.
        """
        workout_dates = {w.start_time.date() for w in workouts}
        if not workout_dates:
            return 0, 0

        today = self._now.date()
        current_streak = 0
        for offset in range(self._config.statistics.streak_lookback_days):
            if today - timedelta(days=offset) in workout_dates:
                current_streak += 1
            else:
                break

        longest_streak = 0
        run = 0
        previous: date | None = None
        for day in sorted(workout_dates):
            if previous is not None and (day - previous).days == 1:
                run += 1
            else:
                run = 1
            longest_streak = max(longest_streak, run)
            previous = day

        return current_streak, longest_streak

    # ------------------------------------------------------------------
    # Breakdowns
    # ------------------------------------------------------------------

    def calculate_workout_type_stats(
        self, workouts: Sequence[WorkoutRecord], time_range: TimeRange
    ) -> list[WorkoutTypeStats]:
        counts: Counter = Counter()
        last_seen: dict[WorkoutType, datetime] = {}
        for workout in workouts:
            counts[workout.type] += 1
            if workout.type not in last_seen or workout.start_time > last_seen[workout.type]:
                last_seen[workout.type] = workout.start_time

        total = len(workouts)
        weeks = time_range.weeks
        stats = [
            WorkoutTypeStats(
                type=workout_type,
                count=count,
                percentage=_percentage(count, total),
                frequency=_per_week(count, weeks),
                last_workout=last_seen[workout_type],
            )
            for workout_type, count in counts.items()
        ]
        stats.sort(key=lambda s: s.count, reverse=True)
        return stats

    def calculate_tag_stats(
        self,
        workouts: Sequence[WorkoutRecord],
        tags: Sequence[Tag],
        time_range: TimeRange,
    ) -> list[TagStats]:
        """Per-tag usage within the window.

        Percentages are relative to workouts carrying at least one tag.  Tags
        missing from ``tags`` (e.g. deleted since) are skipped.
        """
        known_tags = {tag.id: tag for tag in tags}
        counts: Counter = Counter()
        last_used: dict[str, datetime] = {}
        associated: dict[str, list[WorkoutType]] = {}

        for workout in workouts:
            for tag in workout.tags:
                counts[tag.id] += 1
                if tag.id not in last_used or workout.start_time > last_used[tag.id]:
                    last_used[tag.id] = workout.start_time
                types = associated.setdefault(tag.id, [])
                if workout.type not in types:
                    types.append(workout.type)

        tagged_total = sum(1 for w in workouts if w.tags)
        weeks = time_range.weeks

        stats: list[TagStats] = []
        for tag_id, count in counts.items():
            tag = known_tags.get(tag_id)
            if tag is None:
                logger.debug("Skipping stats for unknown tag %s", tag_id)
                continue
            stats.append(
                TagStats(
                    tag=tag,
                    count=count,
                    percentage=_percentage(count, tagged_total),
                    frequency=_per_week(count, weeks),
                    last_used=last_used[tag_id],
                    associated_types=associated[tag_id],
                )
            )
        stats.sort(key=lambda s: s.count, reverse=True)
        return stats

    def calculate_training_volume_stats(
        self, workouts: Sequence[WorkoutRecord]
    ) -> list[TrainingVolumeStats]:
        counts: Counter = Counter(
            w.training_volume for w in workouts if w.training_volume is not None
        )
        total_with_volume = sum(counts.values())
        stats = [
            TrainingVolumeStats(
                volume=volume,
                count=count,
                percentage=_percentage(count, total_with_volume),
            )
            for volume, count in counts.items()
        ]
        stats.sort(key=lambda s: s.count, reverse=True)
        return stats

    # ------------------------------------------------------------------
    # Mental practice / falls
    # ------------------------------------------------------------------

    def calculate_mental_session_stats(
        self, workouts: Sequence[WorkoutRecord]
    ) -> MentalSessionStats:
        sessions = [w for w in workouts if w.type == WorkoutType.MENTAL_PRACTICE]
        if not sessions:
            return MentalSessionStats()

        last_session = max(w.start_time for w in sessions)
        focus_levels = [w.focus_level for w in sessions if w.focus_level is not None]
        average_focus = (
            _round_half_up(sum(focus_levels) / len(focus_levels), 1) if focus_levels else 0.0
        )

        practice_types = PracticeTypeCounts()
        for session in sessions:
            if session.mental_practice_type == MentalPracticeType.MEDITATION:
                practice_types.meditation += 1
            elif session.mental_practice_type == MentalPracticeType.REFLECTING:
                practice_types.reflecting += 1
            else:
                practice_types.other += 1

        return MentalSessionStats(
            total_sessions=len(sessions),
            last_session=last_session,
            days_since_last_session=(self._now - last_session).days,
            average_focus_level=average_focus,
            practice_types=practice_types,
        )

    def calculate_falls_stats(self, workouts: Sequence[WorkoutRecord]) -> FallsStats:
        climbing = [w for w in workouts if w.type in CLIMBING_TYPES]

        total_falls = 0
        sessions_with_falls = 0
        last_fall: datetime | None = None

        for workout in climbing:
            state = workout.mental_state
            if state is None:
                continue
            falls = 1 if state.took_falls else 0
            falls += sum(1 for section in state.climb_sections if section.took_fall)
            if falls:
                total_falls += falls
                sessions_with_falls += 1
                if last_fall is None or workout.start_time > last_fall:
                    last_fall = workout.start_time

        return FallsStats(
            total_falls=total_falls,
            last_fall=last_fall,
            days_since_last_fall=(self._now - last_fall).days if last_fall else math.inf,
            falls_per_session=(
                _round_half_up(total_falls / len(climbing), 1) if climbing else 0.0
            ),
            climbing_sessions_with_falls=sessions_with_falls,
            total_climbing_sessions=len(climbing),
        )

    # ------------------------------------------------------------------
    # Injuries by cycle phase
    # ------------------------------------------------------------------

    def calculate_injury_cycle_stats(
        self,
        events: Sequence[EventRecord],
        cycle_settings: CycleSettings | None = None,
    ) -> InjuryCycleStats:
        """Bucket INJURY events by the cycle phase and day they fell on.

        Args:
            events:         Events (any type; only INJURY is counted).
            cycle_settings: The user's cycle settings.  Without them the
                            result is all-zero rather than partially computed.

        Returns:
            InjuryCycleStats with a zero-filled histogram over
            ``1..cycle_length``.
        """
        injuries = [e for e in events if e.type == EventType.INJURY]
        if cycle_settings is None or not injuries:
            if injuries:
                logger.debug("Cycle settings unavailable; skipping %d injuries", len(injuries))
            return InjuryCycleStats()

        by_phase = _empty_phase_counts()
        day_counts: Counter = Counter()
        for injury in injuries:
            info = calculate_cycle_info(cycle_settings, injury.date)
            by_phase[info.phase] += 1
            day_counts[info.current_day] += 1

        histogram = [
            InjuryDayCount(cycle_day=day, count=day_counts.get(day, 0), phase=phase_for_day(day))
            for day in range(1, cycle_settings.cycle_length + 1)
        ]

        last_injury = max(e.date for e in injuries)
        return InjuryCycleStats(
            total_injuries=len(injuries),
            injuries_by_phase=by_phase,
            injuries_by_cycle_day=histogram,
            last_injury=last_injury,
            days_since_last_injury=(self._now - datetime.combine(last_injury, time.min)).days,
        )

    # ------------------------------------------------------------------
    # Everything
    # ------------------------------------------------------------------

    def calculate_statistics(
        self,
        workouts: Sequence[WorkoutRecord],
        tags: Sequence[Tag],
        timeframe: str,
        custom_range: TimeRange | None = None,
        events: Sequence[EventRecord] | None = None,
        cycle_settings: CycleSettings | None = None,
    ) -> StatisticsData:
        """Compute every statistic for the requested window.

        Args:
            workouts:       Full workout history.
            tags:           The user's tag list.
            timeframe:      Named window (see ``get_time_range``).
            custom_range:   Explicit window for ``custom``.
            events:         Event history (for injury stats).
            cycle_settings: Cycle settings (for injury stats).

        Returns:
            StatisticsData for the workouts and events inside the window.
        """
        time_range = self.get_time_range(timeframe, custom_range)
        in_range = self.filter_workouts_by_time_range(workouts, time_range)
        events_in_range = self.filter_events_by_time_range(events or [], time_range)

        logger.debug(
            "Calculating %s statistics: %d/%d workouts, %d events in range",
            timeframe, len(in_range), len(workouts), len(events_in_range),
        )

        return StatisticsData(
            time_range=time_range,
            overall=self.calculate_overall_stats(in_range, time_range),
            workout_types=self.calculate_workout_type_stats(in_range, time_range),
            tags=self.calculate_tag_stats(in_range, tags, time_range),
            training_volumes=self.calculate_training_volume_stats(in_range),
            mental_sessions=self.calculate_mental_session_stats(in_range),
            falls=self.calculate_falls_stats(in_range),
            injury_cycle=self.calculate_injury_cycle_stats(events_in_range, cycle_settings),
        )


def calculate_statistics(
    workouts: Sequence[WorkoutRecord],
    tags: Sequence[Tag],
    timeframe: str,
    custom_range: TimeRange | None = None,
    events: Sequence[EventRecord] | None = None,
    cycle_settings: CycleSettings | None = None,
    now: datetime | None = None,
) -> StatisticsData:
    """Shortcut for ``StatisticsAggregator(now).calculate_statistics(...)``."""
    return StatisticsAggregator(now=now).calculate_statistics(
        workouts, tags, timeframe, custom_range, events, cycle_settings
    )


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def format_duration(minutes: int) -> str:
    """Format a duration as ``45m``, ``2h`` or ``1h 30m``."""
    if minutes < 60:
        return f"{minutes}m"
    hours, remaining = divmod(minutes, 60)
    return f"{hours}h {remaining}m" if remaining else f"{hours}h"


def format_frequency(per_week: float) -> str:
    """Format a weekly frequency; one decimal below 1/week."""
    if per_week < 1:
        return f"{_round_half_up(per_week, 1)}/week"
    return f"{int(_round_half_up(per_week))}/week"
