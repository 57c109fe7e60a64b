"""Pydantic models for the training journal: workouts, tags, events, tests."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import Field, field_validator

from src.models.base import CruxlogBase, to_local_naive


# ---------- Enums ----------

class WorkoutType(str, Enum):
    GYM = "GYM"
    BOULDERING = "BOULDERING"
    CIRCUITS = "CIRCUITS"
    LEAD_ROCK = "LEAD_ROCK"
    LEAD_ARTIFICIAL = "LEAD_ARTIFICIAL"
    MENTAL_PRACTICE = "MENTAL_PRACTICE"
    FINGERBOARD = "FINGERBOARD"


# Modalities that count as climbing sessions for falls tracking
CLIMBING_TYPES: frozenset[WorkoutType] = frozenset(
    {
        WorkoutType.BOULDERING,
        WorkoutType.LEAD_ROCK,
        WorkoutType.LEAD_ARTIFICIAL,
        WorkoutType.CIRCUITS,
    }
)


class TrainingVolume(str, Enum):
    TR1 = "TR1"
    TR2 = "TR2"
    TR3 = "TR3"
    TR4 = "TR4"
    TR5 = "TR5"


class MentalPracticeType(str, Enum):
    MEDITATION = "MEDITATION"
    REFLECTING = "REFLECTING"
    OTHER = "OTHER"


class EventType(str, Enum):
    INJURY = "INJURY"
    PHYSIO = "PHYSIO"
    COMPETITION = "COMPETITION"
    TRIP = "TRIP"
    OTHER = "OTHER"


# ---------- Tags ----------

class Tag(CruxlogBase):
    id: str
    name: str = ""
    color: str | None = None


# ---------- Workouts ----------

class ClimbSection(CruxlogBase):
    focus_state: str | None = None
    took_fall: bool | None = None
    comfort_zone: str | None = None
    notes: str | None = None


class MentalState(CruxlogBase):
    before_climbing: int | None = Field(default=None, ge=1, le=5)
    climb_sections: list[ClimbSection] = Field(default_factory=list)
    took_falls: bool | None = None


class WorkoutRecord(CruxlogBase):
    id: str
    type: WorkoutType
    start_time: datetime
    training_volume: TrainingVolume | None = None
    focus_level: int | None = Field(default=None, ge=1, le=10)
    mental_practice_type: MentalPracticeType | None = None
    mental_state: MentalState | None = None
    tags: list[Tag] = Field(default_factory=list)

    @field_validator("start_time")
    @classmethod
    def _normalise_start_time(cls, value: datetime) -> datetime:
        return to_local_naive(value)


# ---------- Events ----------

class EventRecord(CruxlogBase):
    id: str
    type: EventType
    date: date
    title: str | None = None
    trip_start_date: date | None = None
    trip_end_date: date | None = None


# ---------- Fingerboard tests ----------

class FingerboardTestResult(CruxlogBase):
    id: str
    date: date
    protocol_id: str | None = None
