"""
Message Service

Conversation reads (pulled from the platform on first access), sending
Messenger replies as the page and flagging messages for follow-up.
"""

from typing import Any, Optional

from fanpage_service.config.constants import RealtimeEvent
from fanpage_service.core.channels.graph_client import FacebookGraphClient
from fanpage_service.core.normalizers.graph_normalizer import PlatformRecord
from fanpage_service.core.realtime.connection_registry import ConnectionRegistry
from fanpage_service.exceptions.base_exceptions import NotFoundError, UpstreamError, ValidationError
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.models.mongo.message_model import MessageDocument
from fanpage_service.models.types import NotificationType
from fanpage_service.repositories.base_repository import Pagination, PaginatedResult
from fanpage_service.repositories.fanpage_repository import FanpageRepository
from fanpage_service.repositories.message_repository import MessageRepository
from fanpage_service.services.base_service import FanpageScopedService
from fanpage_service.services.notification_service import NotificationService, preview
from fanpage_service.services.reconciliation_service import (
    ReconcileScope,
    ReconciliationService,
    message_received_payload,
)
from fanpage_service.utils.date_utils import utc_now


class MessageService(FanpageScopedService):
    """Service for Messenger conversations"""

    def __init__(
            self,
            fanpage_repo: FanpageRepository,
            message_repo: MessageRepository,
            graph_client: FacebookGraphClient,
            reconciliation: ReconciliationService,
            notification_service: NotificationService,
            registry: ConnectionRegistry
    ):
        super().__init__(fanpage_repo)
        self.message_repo = message_repo
        self.graph_client = graph_client
        self.reconciliation = reconciliation
        self.notification_service = notification_service
        self.registry = registry

    async def list_messages(
            self,
            fanpage_id: Any,
            conversation_id: str,
            user_id: Any,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[MessageDocument]:
        fanpage = await self.get_owned_fanpage(fanpage_id, user_id)
        return await self.reconciliation.get_messages(fanpage, conversation_id, pagination)

    async def resolve_sending_fanpage(self, user_id: Any, fanpage_id: Optional[Any] = None) -> FanpageDocument:
        """The requested fanpage, or the user's first connected one."""
        if fanpage_id:
            return await self.get_owned_fanpage(fanpage_id, user_id)

        fanpages = await self.fanpage_repo.list_for_user(user_id)
        if not fanpages:
            raise NotFoundError("No connected fanpage", resource_type="fanpage")
        return fanpages[0]

    async def send_message(
            self,
            user_id: Any,
            recipient_id: str,
            text: str,
            fanpage_id: Optional[Any] = None
    ) -> MessageDocument:
        """
        Send a text as the page and store it in the recipient's conversation.

        Emits ``message:received`` and records a ``message`` notification
        for the sending user.
        """
        if not recipient_id:
            raise ValidationError("Recipient is required", field="recipientId")
        if not text or not text.strip():
            raise ValidationError("Message content is required", field="message")

        fanpage = await self.resolve_sending_fanpage(user_id, fanpage_id)
        response = await self.graph_client.send_message(recipient_id, fanpage.access_token, text)
        message_id = response.get("message_id")
        if not message_id:
            raise UpstreamError("Graph API returned no message id", operation="send_message")

        message = await self.reconciliation.reconcile_one(
            ReconcileScope.messages(fanpage, recipient_id),
            PlatformRecord(
                external_id=message_id,
                fields={
                    "message": text,
                    "from_id": fanpage.page_id,
                    "from_name": fanpage.name,
                    "from_avatar": fanpage.picture_url,
                    "created_time": utc_now(),
                },
                relations={"conversation_id": recipient_id}
            )
        )

        await self.registry.emit_to_user(
            fanpage.user_id,
            RealtimeEvent.MESSAGE_RECEIVED.value,
            message_received_payload(fanpage, message)
        )
        await self.notification_service.create_notification(
            fanpage.user_id,
            NotificationType.MESSAGE,
            title=f"Message sent from {fanpage.name}",
            content=preview(text),
            related_id=recipient_id
        )

        self.log_operation("send_message", user_id=user_id, message_id=message_id, recipient_id=recipient_id)
        return message

    async def set_followed(self, message_id: Any, user_id: Any, followed: bool = True) -> MessageDocument:
        message = await self.message_repo.get_by_id(self.require_object_id(message_id, "message_id"))
        if message is None:
            raise NotFoundError("Message not found", resource_type="message", resource_id=str(message_id))
        fanpage = await self.get_owned_fanpage(message.fanpage_id, user_id)

        message = await self.message_repo.set_followed(message.id, followed)
        await self.registry.emit_to_user(
            fanpage.user_id,
            RealtimeEvent.MESSAGE_FOLLOWED.value,
            {"fanpageId": str(fanpage.id), "item": message.to_api_dict()}
        )
        return message
