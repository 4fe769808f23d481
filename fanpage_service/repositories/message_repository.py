"""
Message Repository
==================

Messenger messages grouped by conversation id, upserted by Graph
message id and read back newest first.
"""

from typing import Any, Dict, Optional

from pymongo import DESCENDING

from fanpage_service.database.mongodb import MESSAGES
from fanpage_service.models.base_model import to_object_id
from fanpage_service.models.mongo.message_model import MessageDocument
from fanpage_service.repositories.base_repository import (
    BaseRepository, Pagination, PaginatedResult, UpsertResult
)


class MessageRepository(BaseRepository[MessageDocument]):
    """Repository for message documents"""

    collection_name = MESSAGES
    model = MessageDocument
    default_sort = [("created_time", DESCENDING)]

    async def get_by_message_id(self, message_id: str) -> Optional[MessageDocument]:
        return await self.find_one({"message_id": message_id})

    async def upsert(
            self,
            message_id: str,
            fields: Dict[str, Any],
            relations: Dict[str, Any]
    ) -> UpsertResult[MessageDocument]:
        """Relations (fanpage, conversation, parent) are fixed at insert."""
        return await self.upsert_by_key("message_id", message_id, fields, relations)

    def _conversation_filter(self, fanpage_id: Any, conversation_id: str) -> Dict[str, Any]:
        return {"fanpage_id": to_object_id(fanpage_id), "conversation_id": conversation_id}

    async def list_for_conversation(
            self,
            fanpage_id: Any,
            conversation_id: str,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[MessageDocument]:
        return await self.list(self._conversation_filter(fanpage_id, conversation_id), pagination)

    async def count_for_conversation(self, fanpage_id: Any, conversation_id: str) -> int:
        return await self.count(self._conversation_filter(fanpage_id, conversation_id))

    async def set_followed(self, message_id: Any, followed: bool) -> MessageDocument:
        return await self.update_fields(message_id, {"followed": followed})
