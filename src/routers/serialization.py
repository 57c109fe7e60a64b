"""Convert engine dataclasses into JSON-safe payloads."""

from __future__ import annotations

import math
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


def to_payload(value: Any) -> Any:
    """Recursively turn dataclasses, enums and dates into plain JSON values.

    ``inf`` and ``nan`` become None (JSON has no representation for them).
    Dict keys that are enums are replaced with their values.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_payload(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, BaseModel):
        return to_payload(value.model_dump())
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float):
        return None if math.isinf(value) or math.isnan(value) else value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {to_payload(k): to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_payload(v) for v in value]
    return value
