# fanpage_service/models/mongo/comment_model.py
"""
MongoDB document model for cached post comments.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from fanpage_service.models.base_model import BaseMongoModel, PyObjectId
from fanpage_service.models.types import Attachment


class CommentDocument(BaseMongoModel):
    """
    Local copy of a comment.

    ``parent_id`` holds the Graph id of the parent comment for replies.
    It is a flat pointer, not a nested thread.
    """

    comment_id: str = Field(..., min_length=1)
    post_id: PyObjectId
    fanpage_id: PyObjectId
    parent_id: Optional[str] = None

    from_id: Optional[str] = None
    from_name: Optional[str] = None
    from_avatar: Optional[str] = None

    message: str = ""
    attachments: List[Attachment] = Field(default_factory=list)
    is_hidden: bool = False
    created_time: Optional[datetime] = None
