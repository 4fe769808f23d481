"""
Post Repository
===============

Cached fanpage posts, upserted by Graph post id.
"""

from typing import Any, Dict, Optional

from pymongo import DESCENDING

from fanpage_service.database.mongodb import POSTS
from fanpage_service.models.base_model import to_object_id
from fanpage_service.models.mongo.post_model import PostDocument
from fanpage_service.repositories.base_repository import (
    BaseRepository, Pagination, PaginatedResult, UpsertResult
)


class PostRepository(BaseRepository[PostDocument]):
    """Repository for post documents"""

    collection_name = POSTS
    model = PostDocument
    default_sort = [("created_time", DESCENDING)]

    async def get_by_post_id(self, post_id: str) -> Optional[PostDocument]:
        return await self.find_one({"post_id": post_id})

    async def upsert(
            self,
            post_id: str,
            fields: Dict[str, Any],
            fanpage_id: Any,
            relations: Optional[Dict[str, Any]] = None
    ) -> UpsertResult[PostDocument]:
        """Overwrite content and counters; the owning fanpage is fixed at insert."""
        insert_fields = {**(relations or {}), "fanpage_id": to_object_id(fanpage_id)}
        return await self.upsert_by_key("post_id", post_id, fields, insert_fields)

    async def list_for_fanpage(
            self,
            fanpage_id: Any,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[PostDocument]:
        return await self.list({"fanpage_id": to_object_id(fanpage_id)}, pagination)

    async def count_for_fanpage(self, fanpage_id: Any) -> int:
        return await self.count({"fanpage_id": to_object_id(fanpage_id)})
