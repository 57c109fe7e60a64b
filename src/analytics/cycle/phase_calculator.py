"""Cycle phase calculator.

Maps cycle settings and a date to the current cycle day, a training-relevant
phase, and the derived period/ovulation dates.

The phase boundaries are a fixed heuristic over the cycle day and do NOT
scale with ``cycle_length``:

    days 1–7    menstrual
    days 8–12   follicular
    days 13–16  ovulation
    days 17–20  early luteal
    day 21+     late luteal (catch-all)

Short cycles therefore never reach some late-luteal days, and long cycles
spend every day past 20 in late luteal.  This is an accepted approximation,
not a clinical model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.models.cycle import CyclePhase, CycleSettings

logger = logging.getLogger("cruxlog.analytics.cycle.phase_calculator")

DEFAULT_CYCLE_LENGTH = 28

# Days after the period start at which ovulation is expected
OVULATION_OFFSET_DAYS = 14

# Inclusive cycle-day bounds of the fertile window
FERTILE_WINDOW = (10, 16)

# (last cycle day of the phase, phase); anything past the table is late luteal
_PHASE_TABLE: tuple[tuple[int, CyclePhase], ...] = (
    (7, CyclePhase.menstrual),
    (12, CyclePhase.follicular),
    (16, CyclePhase.ovulation),
    (20, CyclePhase.early_luteal),
)

# Ordered recommendation keys per phase; display text is the UI's concern
PHASE_RECOMMENDATIONS: dict[CyclePhase, tuple[str, ...]] = {
    CyclePhase.menstrual: (
        "menstrual.reduce_intensity",
        "menstrual.technique_and_mobility",
        "menstrual.longer_rest_between_attempts",
        "menstrual.submaximal_strength",
        "menstrual.plan_recovery_week",
    ),
    CyclePhase.follicular: (
        "follicular.intense_training",
        "follicular.max_strength",
        "follicular.hard_projects",
        "follicular.power_bouldering",
        "follicular.monitor_energy",
    ),
    CyclePhase.ovulation: (
        "ovulation.peak_power_protect_joints",
        "ovulation.peak_intensity",
        "ovulation.long_warmup",
        "ovulation.injury_risk_manage_load",
        "ovulation.projects_without_forcing",
    ),
    CyclePhase.early_luteal: (
        "early_luteal.high_intensity_low_volume",
        "early_luteal.dynamic_movement",
        "early_luteal.fewer_repetitions",
        "early_luteal.adjust_to_feel",
        "early_luteal.strength_endurance",
    ),
    CyclePhase.late_luteal: (
        "late_luteal.consistency_without_pressure",
        "late_luteal.deload",
        "late_luteal.technique_and_tactics",
        "late_luteal.reduce_strength_load",
        "late_luteal.repeats_and_details",
    ),
}


@dataclass(frozen=True)
class CycleInfo:
    """Derived cycle state for one date.

    Attributes:
        current_day:          Day within the cycle, 1-based, in [1, cycle_length].
        phase:                Training phase for ``current_day``.
        next_period_date:     Start date + cycle_length (from the stored start).
        next_ovulation_date:  Start date + 14 days.
        is_in_fertile_window: True when current_day is within days 10–16.
        recommendations:      Ordered recommendation keys for the phase.
    """

    current_day: int
    phase: CyclePhase
    next_period_date: date
    next_ovulation_date: date
    is_in_fertile_window: bool
    recommendations: tuple[str, ...]


def phase_for_day(cycle_day: int) -> CyclePhase:
    """Return the phase for a 1-based cycle day.

    Args:
        cycle_day: Day within the cycle.

    Returns:
        CyclePhase; days beyond 20 are always late luteal.
    """
    for last_day, phase in _PHASE_TABLE:
        if cycle_day <= last_day:
            return phase
    return CyclePhase.late_luteal


def cycle_day_for(settings: CycleSettings, target_date: date) -> int:
    """Return the wrapped cycle day of ``target_date``.

    Uses a floored modulo so dates before the period start still resolve to
    a valid day in [1, cycle_length].
    """
    days_since_start = (target_date - settings.last_period_start_date).days
    return (days_since_start % settings.cycle_length) + 1


def today_in(timezone_name: str) -> date:
    """Return today's date in the given IANA timezone.

    Falls back to the local date when the zone is unknown.
    """
    try:
        return datetime.now(ZoneInfo(timezone_name)).date()
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using local date", timezone_name)
        return date.today()


def calculate_cycle_info(
    settings: CycleSettings,
    target_date: date | datetime | None = None,
) -> CycleInfo:
    """Compute cycle day, phase and derived dates for a target date.

    Pure: the same settings and date always produce an equal CycleInfo.

    Args:
        settings:    The user's cycle settings.
        target_date: Date to evaluate.  Defaults to today in
                     ``settings.timezone``; datetimes are reduced to their date.

    Returns:
        CycleInfo for ``target_date``.
    """
    if target_date is None:
        target_date = today_in(settings.timezone)
    elif isinstance(target_date, datetime):
        target_date = target_date.date()

    current_day = cycle_day_for(settings, target_date)
    phase = phase_for_day(current_day)
    start = settings.last_period_start_date

    return CycleInfo(
        current_day=current_day,
        phase=phase,
        next_period_date=start + timedelta(days=settings.cycle_length),
        next_ovulation_date=start + timedelta(days=OVULATION_OFFSET_DAYS),
        is_in_fertile_window=FERTILE_WINDOW[0] <= current_day <= FERTILE_WINDOW[1],
        recommendations=PHASE_RECOMMENDATIONS[phase],
    )


def default_cycle_settings(today: date | None = None) -> CycleSettings:
    """Return settings for a user who has just enabled cycle tracking."""
    return CycleSettings(
        cycle_length=DEFAULT_CYCLE_LENGTH,
        last_period_start_date=today or date.today(),
        timezone="UTC",
    )
