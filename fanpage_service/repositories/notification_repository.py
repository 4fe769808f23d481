"""
Notification Repository
=======================

Per-user notification feed with oldest-first pruning.
"""

from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING

from fanpage_service.database.mongodb import NOTIFICATIONS
from fanpage_service.models.base_model import to_object_id
from fanpage_service.models.mongo.notification_model import NotificationDocument
from fanpage_service.repositories.base_repository import (
    BaseRepository, Pagination, PaginatedResult
)
from fanpage_service.repositories.exceptions import QueryError


class NotificationRepository(BaseRepository[NotificationDocument]):
    """Repository for notification documents"""

    collection_name = NOTIFICATIONS
    model = NotificationDocument
    default_sort = [("created_at", DESCENDING), ("_id", DESCENDING)]

    async def count_for_user(self, user_id: Any, unread_only: bool = False) -> int:
        filters = {"user_id": to_object_id(user_id)}
        if unread_only:
            filters["is_read"] = False
        return await self.count(filters)

    async def list_for_user(
            self,
            user_id: Any,
            pagination: Optional[Pagination] = None,
            unread_only: bool = False
    ) -> PaginatedResult[NotificationDocument]:
        filters = {"user_id": to_object_id(user_id)}
        if unread_only:
            filters["is_read"] = False
        return await self.list(filters, pagination)

    async def delete_oldest(self, user_id: Any, count: int) -> int:
        """
        Delete the ``count`` oldest notifications of a user.

        Returns:
            Number of documents removed
        """
        if count <= 0:
            return 0

        try:
            cursor = (
                self.collection.find({"user_id": to_object_id(user_id)}, {"_id": 1})
                .sort([("created_at", ASCENDING), ("_id", ASCENDING)])
                .limit(count)
            )
            oldest = await cursor.to_list(length=count)
        except Exception as e:
            self._log_error("delete_oldest", e, user_id=str(user_id))
            raise QueryError("delete_oldest", e, self.collection_name)

        if not oldest:
            return 0
        return await self.delete_many({"_id": {"$in": [doc["_id"] for doc in oldest]}})

    async def mark_read(self, notification_id: Any, user_id: Any) -> Optional[NotificationDocument]:
        """Mark one notification read; None when it does not belong to the user."""
        notification = await self.get_by_id(notification_id)
        if notification is None or str(notification.user_id) != str(user_id):
            return None
        return await self.update_fields(notification.id, {"is_read": True})

    async def mark_all_read(self, user_id: Any) -> int:
        try:
            result = await self.collection.update_many(
                {"user_id": to_object_id(user_id), "is_read": False},
                {"$set": {"is_read": True}}
            )
        except Exception as e:
            self._log_error("mark_all_read", e, user_id=str(user_id))
            raise QueryError("mark_all_read", e, self.collection_name)
        return result.modified_count
