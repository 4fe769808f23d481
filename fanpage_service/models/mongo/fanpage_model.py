# fanpage_service/models/mongo/fanpage_model.py
"""
MongoDB document model for connected fanpages.
"""

from typing import Any, Dict, Optional

from pydantic import Field

from fanpage_service.models.base_model import BaseMongoModel, PyObjectId


class FanpageDocument(BaseMongoModel):
    """A Facebook page connected by a user"""

    page_id: str = Field(..., min_length=1)
    name: str
    access_token: str
    user_id: PyObjectId
    category: Optional[str] = None
    picture_url: Optional[str] = None
    is_connected: bool = True

    def is_owned_by(self, user_id: Any) -> bool:
        return str(self.user_id) == str(user_id)

    def to_api_dict(self) -> Dict[str, Any]:
        # The page credential never leaves the service
        data = super().to_api_dict()
        data.pop("access_token", None)
        return data
