"""
Fanpage Repository
==================

Connected fanpages, keyed externally by the Graph page id.
"""

from typing import Any, List, Optional

from pymongo import ASCENDING

from fanpage_service.database.mongodb import FANPAGES
from fanpage_service.models.base_model import to_object_id
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.repositories.base_repository import BaseRepository


class FanpageRepository(BaseRepository[FanpageDocument]):
    """Repository for fanpage documents"""

    collection_name = FANPAGES
    model = FanpageDocument
    default_sort = [("created_at", ASCENDING)]

    async def get_by_page_id(self, page_id: str) -> Optional[FanpageDocument]:
        return await self.find_one({"page_id": page_id})

    async def get_connected_by_page_id(self, page_id: str) -> Optional[FanpageDocument]:
        """Resolve a webhook entry's page id to a connected local fanpage."""
        return await self.find_one({"page_id": page_id, "is_connected": True})

    async def list_for_user(self, user_id: Any, connected_only: bool = True) -> List[FanpageDocument]:
        filters = {"user_id": to_object_id(user_id)}
        if connected_only:
            filters["is_connected"] = True
        return await self.find_many(filters)

    async def count_connected_for_user(self, user_id: Any) -> int:
        return await self.count({"user_id": to_object_id(user_id), "is_connected": True})

    async def set_connected(self, fanpage_id: Any, connected: bool) -> FanpageDocument:
        return await self.update_fields(fanpage_id, {"is_connected": connected})

    async def update_access_token(self, fanpage_id: Any, access_token: str) -> FanpageDocument:
        return await self.update_fields(fanpage_id, {"access_token": access_token})
