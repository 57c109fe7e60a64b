"""Menstrual cycle phase calculation for Cruxlog.

Cycle data is opt-in only.  The calculator is a pure function of the
user's cycle settings and a date.

Modules:
    phase_calculator — Cycle day, phase, fertile window and recommendations
"""

from src.analytics.cycle.phase_calculator import (
    CycleInfo,
    calculate_cycle_info,
    phase_for_day,
)

__all__ = [
    "CycleInfo",
    "calculate_cycle_info",
    "phase_for_day",
]
