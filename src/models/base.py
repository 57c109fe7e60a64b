"""Shared Pydantic base models and utilities."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


def to_local_naive(value: datetime) -> datetime:
    """Normalise a timestamp to naive local wall-clock time.

    The analytics engine compares timestamps against ``datetime.now()``, so
    timezone-aware inputs (e.g. ISO strings ending in ``Z``) are converted to
    the process's local zone and stripped of tzinfo.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class CruxlogBase(BaseModel):
    """Base model with shared config for all Cruxlog schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )
