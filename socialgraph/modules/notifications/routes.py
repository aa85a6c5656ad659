from fastapi import APIRouter, Depends, Query
from socialgraph.core.dependencies import get_current_user_id
from socialgraph.database.base import EntityStore
from socialgraph.database.supabase_client import get_store
from socialgraph.modules.notifications.schemas import (
    Notification, NotificationListResponse, UnreadCountResponse, MarkAllReadResponse
)
from socialgraph.modules.notifications.service import NotificationDispatcher
from typing import Optional

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(store: EntityStore = Depends(get_store)) -> NotificationDispatcher:
    return NotificationDispatcher(store)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread: bool = False,
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: NotificationDispatcher = Depends(get_notification_service)
):
    """Newest notifications for the current user, with the unread total"""
    return NotificationListResponse(
        notifications=service.list_for(user_id, unread_only=unread, limit=limit),
        unread_count=service.unread_count(user_id),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_id: str = Depends(get_current_user_id),
    service: NotificationDispatcher = Depends(get_notification_service)
):
    return UnreadCountResponse(unread_count=service.unread_count(user_id))


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    service: NotificationDispatcher = Depends(get_notification_service)
):
    return MarkAllReadResponse(updated=service.mark_all_read(user_id))


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    service: NotificationDispatcher = Depends(get_notification_service)
):
    return service.mark_read(notification_id, user_id)


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    service: NotificationDispatcher = Depends(get_notification_service)
):
    service.delete(notification_id, user_id)
    return None
