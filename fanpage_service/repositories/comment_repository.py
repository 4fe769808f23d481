"""
Comment Repository
==================

Cached post comments, upserted by Graph comment id.
"""

from typing import Any, Dict, Optional

from pymongo import DESCENDING

from fanpage_service.database.mongodb import COMMENTS
from fanpage_service.models.base_model import to_object_id
from fanpage_service.models.mongo.comment_model import CommentDocument
from fanpage_service.repositories.base_repository import (
    BaseRepository, Pagination, PaginatedResult, UpsertResult
)


class CommentRepository(BaseRepository[CommentDocument]):
    """Repository for comment documents"""

    collection_name = COMMENTS
    model = CommentDocument
    default_sort = [("created_time", DESCENDING)]

    async def get_by_comment_id(self, comment_id: str) -> Optional[CommentDocument]:
        return await self.find_one({"comment_id": comment_id})

    async def upsert(
            self,
            comment_id: str,
            fields: Dict[str, Any],
            relations: Dict[str, Any]
    ) -> UpsertResult[CommentDocument]:
        """
        Overwrite body, hidden flag and author details; the post, fanpage
        and parent pointers are written only when the comment is created.
        """
        return await self.upsert_by_key("comment_id", comment_id, fields, relations)

    async def list_for_post(
            self,
            post_id: Any,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[CommentDocument]:
        return await self.list({"post_id": to_object_id(post_id)}, pagination)

    async def count_for_post(self, post_id: Any) -> int:
        return await self.count({"post_id": to_object_id(post_id)})

    async def set_hidden(self, comment_id: Any, hidden: bool) -> CommentDocument:
        return await self.update_fields(comment_id, {"is_hidden": hidden})

    async def delete_by_comment_id(self, comment_id: str) -> int:
        return await self.delete_many({"comment_id": comment_id})

    async def delete_for_post(self, post_id: Any) -> int:
        return await self.delete_many({"post_id": to_object_id(post_id)})
