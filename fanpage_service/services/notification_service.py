"""
Notification Service

Creates bounded per-user notifications and pushes each one to the
user's real-time room. Once a user holds ``max_per_user`` notifications,
the oldest are pruned before the insert so ``prune_target`` remain.
"""

from typing import Any, Dict, Optional

from fanpage_service.config.constants import RealtimeEvent
from fanpage_service.core.realtime.connection_registry import ConnectionRegistry
from fanpage_service.exceptions.base_exceptions import NotFoundError
from fanpage_service.models.mongo.notification_model import NotificationDocument
from fanpage_service.models.types import NotificationType
from fanpage_service.repositories.base_repository import Pagination
from fanpage_service.repositories.notification_repository import NotificationRepository
from fanpage_service.services.base_service import BaseService

# Notification previews are cut to this many characters
CONTENT_PREVIEW_LENGTH = 100


def preview(text: Optional[str], length: int = CONTENT_PREVIEW_LENGTH) -> str:
    text = (text or "").strip()
    if len(text) <= length:
        return text
    return text[:length - 3].rstrip() + "..."


class NotificationService(BaseService):
    """Service for the per-user notification feed"""

    def __init__(
            self,
            notification_repo: NotificationRepository,
            registry: ConnectionRegistry,
            max_per_user: int = 100,
            prune_target: int = 90
    ):
        super().__init__()
        self.notification_repo = notification_repo
        self.registry = registry
        self.max_per_user = max_per_user
        self.prune_target = prune_target

    async def create_notification(
            self,
            user_id: Any,
            notification_type: NotificationType,
            title: str,
            content: str,
            related_id: Optional[str] = None
    ) -> NotificationDocument:
        """
        Store a notification and emit it to the user's room.

        Args:
            user_id: Recipient user
            notification_type: Kind of notification
            title: Short heading
            content: Body text
            related_id: Opaque reference to the entity it is about

        Returns:
            Stored notification
        """
        pruned = await self._prune(user_id)

        notification = await self.notification_repo.create(
            NotificationDocument(
                user_id=user_id,
                type=notification_type,
                title=title,
                content=content,
                related_id=related_id,
            )
        )

        self.log_operation(
            "create_notification",
            user_id=user_id,
            notification_type=notification.type,
            related_id=related_id,
            pruned=pruned
        )

        await self.registry.emit_to_user(
            user_id, RealtimeEvent.NOTIFICATION.value, notification.to_api_dict()
        )
        return notification

    async def _prune(self, user_id: Any) -> int:
        count = await self.notification_repo.count_for_user(user_id)
        if count < self.max_per_user:
            return 0
        # Leave room for the notification about to be inserted
        excess = count - self.prune_target + 1
        return await self.notification_repo.delete_oldest(user_id, excess)

    async def list_notifications(
            self,
            user_id: Any,
            pagination: Optional[Pagination] = None,
            unread_only: bool = False
    ) -> Dict[str, Any]:
        result = await self.notification_repo.list_for_user(user_id, pagination, unread_only)
        data = result.to_dict()
        data["unread_count"] = await self.notification_repo.count_for_user(user_id, unread_only=True)
        return data

    async def mark_read(self, notification_id: Any, user_id: Any) -> NotificationDocument:
        """
        Raises:
            NotFoundError: If the notification does not exist for this user
        """
        notification = await self.notification_repo.mark_read(
            self.require_object_id(notification_id, "notification_id"), user_id
        )
        if notification is None:
            raise NotFoundError(
                "Notification not found",
                resource_type="notification",
                resource_id=str(notification_id)
            )
        return notification

    async def mark_all_read(self, user_id: Any) -> int:
        updated = await self.notification_repo.mark_all_read(user_id)
        self.log_operation("mark_all_read", user_id=user_id, updated=updated)
        return updated
