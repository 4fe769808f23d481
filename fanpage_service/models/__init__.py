"""
Data models for Fanpage Service.

``base_model`` holds the pydantic base for MongoDB documents, ``types`` the
shared enums and value objects, and ``mongo`` one module per collection.
"""

from fanpage_service.models.base_model import BaseMongoModel, PyObjectId, to_object_id
from fanpage_service.models.types import NotificationType, SyncEntity, ConnectionState, Attachment

__all__ = [
    "BaseMongoModel",
    "PyObjectId",
    "to_object_id",
    "NotificationType",
    "SyncEntity",
    "ConnectionState",
    "Attachment",
]
