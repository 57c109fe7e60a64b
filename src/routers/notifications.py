"""In-app notification inbox."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from src.dependencies import NotificationStoreDep
from src.models.api import UnreadCountRead
from src.models.notifications import NotificationRecord, NotificationSettings

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationRecord])
async def list_notifications(store: NotificationStoreDep) -> Any:
    return store.get_messages()


@router.get("/unread-count", response_model=UnreadCountRead)
async def unread_count(store: NotificationStoreDep) -> Any:
    return {"unread": store.get_unread_count(), "total": len(store)}


@router.get("/settings", response_model=NotificationSettings)
async def get_notification_settings(store: NotificationStoreDep) -> Any:
    return store.get_settings()


@router.put("/settings", response_model=NotificationSettings)
async def update_notification_settings(
    body: NotificationSettings, store: NotificationStoreDep
) -> Any:
    """Replace the saved reminder preferences used by every reminder run."""
    return store.save_settings(body)


@router.post("/read-all", status_code=204)
async def mark_all_read(store: NotificationStoreDep) -> None:
    store.mark_all_as_read()


@router.post("/{message_id}/read", status_code=204)
async def mark_read(message_id: str, store: NotificationStoreDep) -> None:
    if not store.mark_as_read(message_id):
        raise HTTPException(status_code=404, detail="Notification not found")


@router.delete("/{message_id}", status_code=204)
async def delete_notification(message_id: str, store: NotificationStoreDep) -> None:
    if not store.remove_message(message_id):
        raise HTTPException(status_code=404, detail="Notification not found")


@router.delete("", status_code=204)
async def clear_notifications(store: NotificationStoreDep) -> None:
    store.clear_all_messages()
