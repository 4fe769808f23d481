# fanpage_service/models/mongo/message_model.py
"""
MongoDB document model for Messenger messages.
Messages are grouped by ``conversation_id``; there is no conversation document.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from fanpage_service.models.base_model import BaseMongoModel, PyObjectId
from fanpage_service.models.types import Attachment


class MessageDocument(BaseMongoModel):
    """Local copy of a message exchanged with a page"""

    message_id: str = Field(..., min_length=1)
    fanpage_id: PyObjectId
    conversation_id: str
    parent_id: Optional[str] = None

    from_id: Optional[str] = None
    from_name: Optional[str] = None
    from_avatar: Optional[str] = None

    message: str = ""
    attachments: List[Attachment] = Field(default_factory=list)
    followed: bool = False
    created_time: Optional[datetime] = None
