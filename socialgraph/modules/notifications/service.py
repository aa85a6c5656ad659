import logging
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel
from socialgraph.config import settings
from socialgraph.core.errors import Forbidden
from socialgraph.database.base import EntityStore
from socialgraph.modules.notifications.schemas import Notification, NotificationType, build_payload

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Durable notification log; delivery (push/email/realtime) reads it externally."""

    def __init__(self, store: EntityStore):
        self.store = store

    def emit(
        self,
        recipient_id: str,
        source_user_id: str,
        notification_type: NotificationType,
        payload: Union[Dict[str, Any], BaseModel],
    ) -> Notification:
        """Append a notification for recipient_id"""
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(exclude={"type"})
        notification = Notification(
            recipient_id=recipient_id,
            source_user_id=source_user_id,
            type=notification_type,
            payload=build_payload(notification_type, payload),
        )
        stored = self.store.insert_notification(notification)
        logger.info(f"Notification {stored.type.value} queued for {recipient_id} (from {source_user_id})")
        return stored

    def _get_owned(self, notification_id: str, acting_user_id: str) -> Notification:
        notification = self.store.get_notification(notification_id)
        if notification.recipient_id != acting_user_id:
            raise Forbidden("Only the recipient can modify this notification")
        return notification

    def mark_read(self, notification_id: str, acting_user_id: str) -> Notification:
        notification = self._get_owned(notification_id, acting_user_id)
        if notification.is_read:
            return notification
        return self.store.update_notification(notification_id, {"is_read": True})

    def mark_all_read(self, user_id: str) -> int:
        updated = self.store.mark_all_notifications_read(user_id)
        logger.debug(f"Marked {updated} notification(s) read for {user_id}")
        return updated

    def list_for(self, user_id: str, unread_only: bool = False, limit: Optional[int] = None) -> List[Notification]:
        """Newest first"""
        return self.store.list_notifications(
            user_id,
            unread_only=unread_only,
            limit=limit or settings.notifications_page_size,
        )

    def unread_count(self, user_id: str) -> int:
        return self.store.count_unread_notifications(user_id)

    def delete(self, notification_id: str, acting_user_id: str) -> bool:
        self._get_owned(notification_id, acting_user_id)
        return self.store.delete_notification(notification_id)
