"""Persisted in-app notification store.

Holds the user's notification messages newest-first, tracks read state,
notifies subscribers on every change, and keeps the dedup index that makes
reminders fire at most once per (type, logical key, day).

The store is an ordinary object: construct one per process (or per test)
and inject it wherever reminders are processed.  Persistence goes through a
small key-value backend; the whole message list is written as one JSON blob
on every mutation.

Usage::

    store = NotificationStore(JsonFileBackend(Path("data/notifications.json")))
    unsubscribe = store.subscribe(lambda messages: render(messages))
    record = store.add_once(draft)   # None if already fired today
    store.mark_as_read(record.id)
    unsubscribe()
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Protocol
from uuid import uuid4

from pydantic import TypeAdapter

from src.analytics.config_loader import get_analytics_config
from src.analytics.reminders.dedup import notification_key
from src.models.notifications import (
    NotificationDraft,
    NotificationRecord,
    NotificationSettings,
    NotificationType,
)

logger = logging.getLogger("cruxlog.analytics.notification_store")

Listener = Callable[[list[NotificationRecord]], None]

_records_adapter = TypeAdapter(list[NotificationRecord])


# ---------------------------------------------------------------------------
# Key-value backends
# ---------------------------------------------------------------------------


class KeyValueBackend(Protocol):
    """Minimal string key-value persistence used by the store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryBackend:
    """Process-local backend; nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileBackend:
    """Backend storing all keys in a single JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {self._path}")
        return data

    def get(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except ValueError as exc:
            logger.warning("Discarding unreadable store file %s: %s", self._path, exc)
            data = {}
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)
        tmp_path.replace(self._path)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class NotificationStore:
    """Append-only, deduplicated notification list with read state.

    Messages are loaded once at construction.  If loading fails the store
    starts empty; if saving fails the in-memory list stays authoritative for
    the rest of the session.  Both failures are logged, never raised.
    """

    def __init__(
        self,
        backend: KeyValueBackend | None = None,
        storage_key: str | None = None,
        settings_key: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the store and load persisted messages and preferences.

        Args:
            backend:      Persistence backend (defaults to in-memory).
            storage_key:  Key the message list is stored under.  Defaults to
                          ``notifications.storage_key`` from the analytics config.
            settings_key: Key the reminder preferences are stored under.
                          Defaults to ``notifications.settings_key``.
            clock:        Source of "now" for timestamps (defaults to datetime.now).
        """
        self._backend = backend or InMemoryBackend()
        keys = get_analytics_config().notifications
        self._storage_key = storage_key or keys.storage_key
        self._settings_key = settings_key or keys.settings_key
        self._clock = clock or datetime.now
        self._messages: list[NotificationRecord] = []
        self._fired: set[str] = set()
        self._listeners: list[Listener] = []
        self._settings = NotificationSettings()
        self._load()
        self._load_settings()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_message(
        self, draft: NotificationDraft, now: datetime | None = None
    ) -> NotificationRecord:
        """Store a new unread notification and notify subscribers.

        Args:
            draft: Notification content from an evaluator.
            now:   Timestamp to assign (defaults to the store clock).

        Returns:
            The stored record with its id, timestamp and dedup key.
        """
        timestamp = now or self._clock()
        record = NotificationRecord(
            **draft.model_dump(),
            id=f"msg_{uuid4().hex}",
            timestamp=timestamp,
            read=False,
            dedup_key=notification_key(draft.type, draft.logical_key, timestamp.date()),
        )
        self._messages.insert(0, record)
        self._fired.add(record.dedup_key)
        self._changed()
        return record.model_copy()

    def add_once(
        self, draft: NotificationDraft, now: datetime | None = None
    ) -> NotificationRecord | None:
        """Add ``draft`` unless the same reminder already fired that day.

        The check and the write happen in one synchronous call; this is safe
        only while the store has a single writer.

        Returns:
            The new record, or None if it was a duplicate.
        """
        timestamp = now or self._clock()
        if self.has_fired(draft.type, draft.logical_key, timestamp.date()):
            logger.debug(
                "Skipping duplicate %s/%s for %s",
                draft.type.value, draft.logical_key, timestamp.date(),
            )
            return None
        return self.add_message(draft, now=timestamp)

    def mark_as_read(self, message_id: str) -> bool:
        """Mark one message read.  Returns False if the id is unknown."""
        for message in self._messages:
            if message.id == message_id:
                message.read = True
                self._changed()
                return True
        return False

    def mark_all_as_read(self) -> None:
        for message in self._messages:
            message.read = True
        self._changed()

    def remove_message(self, message_id: str) -> bool:
        """Delete one message.  Returns False if the id is unknown.

        The message's dedup key goes with it, so a removed reminder may fire
        again later the same day.
        """
        remaining = [m for m in self._messages if m.id != message_id]
        if len(remaining) == len(self._messages):
            return False
        self._messages = remaining
        self._rebuild_index()
        self._changed()
        return True

    def clear_all_messages(self) -> None:
        self._messages = []
        self._fired.clear()
        self._changed()

    # ------------------------------------------------------------------
    # Reminder preferences
    # ------------------------------------------------------------------

    def get_settings(self) -> NotificationSettings:
        """Return a copy of the saved preferences (defaults if never saved)."""
        return self._settings.model_copy()

    def save_settings(self, settings: NotificationSettings) -> NotificationSettings:
        """Replace the saved preferences.

        The new preferences apply for the rest of the session even if they
        cannot be written to the backend.
        """
        self._settings = settings.model_copy()
        try:
            self._backend.set(self._settings_key, self._settings.model_dump_json())
        except (OSError, ValueError) as exc:
            logger.error("Failed to save notification settings: %s", exc)
        return self.get_settings()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_messages(self) -> list[NotificationRecord]:
        """Return copies of all messages, newest first."""
        return [m.model_copy() for m in self._messages]

    def get_unread_count(self) -> int:
        return sum(1 for m in self._messages if not m.read)

    def has_fired(
        self, notification_type: NotificationType, logical_key: str, day: date
    ) -> bool:
        """Return True if this reminder was already stored for ``day``."""
        return notification_key(notification_type, logical_key, day) in self._fired

    def __len__(self) -> int:
        return len(self._messages)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the message list after each change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _changed(self) -> None:
        self._save()
        snapshot = self.get_messages()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Notification listener %r failed", listener)

    def _rebuild_index(self) -> None:
        self._fired = {m.dedup_key for m in self._messages}

    def _load(self) -> None:
        try:
            raw = self._backend.get(self._storage_key)
            if raw:
                self._messages = _records_adapter.validate_json(raw)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load notification messages: %s", exc)
            self._messages = []
        self._rebuild_index()
        logger.debug("Loaded %d notification messages", len(self._messages))

    def _save(self) -> None:
        try:
            payload = _records_adapter.dump_json(self._messages).decode("utf-8")
            self._backend.set(self._storage_key, payload)
        except (OSError, ValueError) as exc:
            logger.error("Failed to save notification messages: %s", exc)

    def _load_settings(self) -> None:
        try:
            raw = self._backend.get(self._settings_key)
            if raw:
                # fields missing from an older payload take their defaults
                self._settings = NotificationSettings.model_validate_json(raw)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load notification settings: %s", exc)
            self._settings = NotificationSettings()
