"""Menstrual cycle endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from src.analytics.cycle import calculate_cycle_info
from src.models.api import CycleInfoRead, CycleInfoRequest
from src.routers.serialization import to_payload

router = APIRouter(prefix="/cycle", tags=["cycle"])


@router.post("/info", response_model=CycleInfoRead)
async def cycle_info(body: CycleInfoRequest) -> Any:
    return to_payload(calculate_cycle_info(body.settings, body.target_date))
