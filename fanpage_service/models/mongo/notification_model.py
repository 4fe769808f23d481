# fanpage_service/models/mongo/notification_model.py
"""
MongoDB document model for user notifications.
"""

from typing import Optional

from pydantic import Field

from fanpage_service.models.base_model import BaseMongoModel, PyObjectId
from fanpage_service.models.types import NotificationType


class NotificationDocument(BaseMongoModel):
    """Bounded per-user notification feed entry"""

    user_id: PyObjectId
    type: NotificationType
    title: str = Field(..., min_length=1)
    content: str
    related_id: Optional[str] = None
    is_read: bool = False
