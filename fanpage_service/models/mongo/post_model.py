# fanpage_service/models/mongo/post_model.py
"""
MongoDB document model for cached fanpage posts.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from fanpage_service.models.base_model import BaseMongoModel, PyObjectId
from fanpage_service.models.types import Attachment


class PostDocument(BaseMongoModel):
    """Local copy of a page post, keyed by its Graph id"""

    post_id: str = Field(..., min_length=1)
    fanpage_id: PyObjectId
    content: str = ""
    picture: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)

    # Engagement counters are overwritten on every sync
    likes: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)
    comments_count: int = Field(default=0, ge=0)

    created_time: Optional[datetime] = None
    updated_time: Optional[datetime] = None
