"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends

from src.analytics.notification_store import JsonFileBackend, NotificationStore
from src.config import Settings, get_settings


@lru_cache
def get_notification_store() -> NotificationStore:
    """Return the process-wide notification store.

    Backed by the JSON file at ``notification_store_path``.  Tests override
    this dependency with an in-memory store.
    """
    settings = get_settings()
    return NotificationStore(JsonFileBackend(Path(settings.notification_store_path)))


# Annotated shortcuts for route signatures
NotificationStoreDep = Annotated[NotificationStore, Depends(get_notification_store)]
AppSettings = Annotated[Settings, Depends(get_settings)]
