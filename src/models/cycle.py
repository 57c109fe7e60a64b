"""Pydantic models for menstrual cycle tracking settings and phases."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import ConfigDict, Field

from src.models.base import CruxlogBase


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulation = "ovulation"
    early_luteal = "early_luteal"
    late_luteal = "late_luteal"


class CycleSettings(CruxlogBase):
    """Cycle tracking settings owned by the user profile.

    ``cycle_length`` must be positive; the phase calculator does not guard
    against zero or negative lengths.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cycle_length: int = Field(default=28, gt=0, le=90)
    last_period_start_date: date
    timezone: str = "UTC"
