"""Tests for the menstrual cycle phase calculator."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.analytics.cycle.phase_calculator import (
    PHASE_RECOMMENDATIONS,
    calculate_cycle_info,
    cycle_day_for,
    default_cycle_settings,
    phase_for_day,
    today_in,
)
from src.models.cycle import CyclePhase, CycleSettings

START = date(2026, 1, 1)


def settings(cycle_length: int = 28, start: date = START) -> CycleSettings:
    return CycleSettings(cycle_length=cycle_length, last_period_start_date=start)


class TestPhaseForDay:
    @pytest.mark.parametrize(
        ("day", "phase"),
        [
            (1, CyclePhase.menstrual),
            (7, CyclePhase.menstrual),
            (8, CyclePhase.follicular),
            (12, CyclePhase.follicular),
            (13, CyclePhase.ovulation),
            (16, CyclePhase.ovulation),
            (17, CyclePhase.early_luteal),
            (20, CyclePhase.early_luteal),
            (21, CyclePhase.late_luteal),
            (28, CyclePhase.late_luteal),
            (40, CyclePhase.late_luteal),
        ],
    )
    def test_phase_boundaries(self, day: int, phase: CyclePhase) -> None:
        assert phase_for_day(day) == phase


class TestCalculateCycleInfo:
    def test_start_date_is_day_one(self) -> None:
        info = calculate_cycle_info(settings(), START)
        assert info.current_day == 1
        assert info.phase == CyclePhase.menstrual

    def test_28_day_examples(self) -> None:
        """Day 10 is follicular and fertile; day 15 is ovulation."""
        day_10 = calculate_cycle_info(settings(), START + timedelta(days=9))
        assert day_10.current_day == 10
        assert day_10.phase == CyclePhase.follicular
        assert day_10.is_in_fertile_window

        day_15 = calculate_cycle_info(settings(), START + timedelta(days=14))
        assert day_15.phase == CyclePhase.ovulation

    def test_wraps_after_cycle_length(self) -> None:
        info = calculate_cycle_info(settings(), START + timedelta(days=28))
        assert info.current_day == 1

    def test_dates_before_start_stay_in_range(self) -> None:
        for offset in range(1, 60):
            info = calculate_cycle_info(settings(), START - timedelta(days=offset))
            assert 1 <= info.current_day <= 28
        assert calculate_cycle_info(settings(), START - timedelta(days=1)).current_day == 28

    def test_fertile_window_iff_days_10_to_16(self) -> None:
        for offset in range(28):
            info = calculate_cycle_info(settings(), START + timedelta(days=offset))
            assert info.is_in_fertile_window == (10 <= info.current_day <= 16)

    def test_next_dates_relative_to_start(self) -> None:
        info = calculate_cycle_info(settings(30), START + timedelta(days=45))
        assert info.next_period_date == START + timedelta(days=30)
        assert info.next_ovulation_date == START + timedelta(days=14)

    def test_pure(self) -> None:
        target = date(2026, 2, 10)
        assert calculate_cycle_info(settings(), target) == calculate_cycle_info(settings(), target)

    def test_accepts_datetime(self) -> None:
        info = calculate_cycle_info(settings(), datetime(2026, 1, 3, 23, 30))
        assert info.current_day == 3

    def test_recommendations_match_phase(self) -> None:
        info = calculate_cycle_info(settings(), START + timedelta(days=22))
        assert info.recommendations == PHASE_RECOMMENDATIONS[CyclePhase.late_luteal]
        assert len(info.recommendations) == 5

    def test_short_cycle_uses_fixed_buckets(self) -> None:
        """A 21-day cycle ends on the single catch-all late luteal day."""
        info = calculate_cycle_info(settings(21), START + timedelta(days=20))
        assert info.current_day == 21
        assert info.phase == CyclePhase.late_luteal


class TestHelpers:
    def test_cycle_day_for(self) -> None:
        assert cycle_day_for(settings(), START + timedelta(days=27)) == 28

    def test_unknown_timezone_falls_back_to_local_date(self) -> None:
        assert today_in("Not/AZone") == date.today()

    def test_default_cycle_settings(self) -> None:
        defaults = default_cycle_settings(date(2026, 5, 1))
        assert defaults.cycle_length == 28
        assert defaults.last_period_start_date == date(2026, 5, 1)
        assert defaults.timezone == "UTC"

    def test_cycle_length_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            CycleSettings(cycle_length=0, last_period_start_date=START)
