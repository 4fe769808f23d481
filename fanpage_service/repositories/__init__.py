"""
Repository layer for Fanpage Service.

One repository per MongoDB collection, all built on ``BaseRepository``.
"""

from fanpage_service.repositories.base_repository import (
    BaseRepository, Pagination, PaginatedResult, UpsertResult
)
from fanpage_service.repositories.fanpage_repository import FanpageRepository
from fanpage_service.repositories.post_repository import PostRepository
from fanpage_service.repositories.comment_repository import CommentRepository
from fanpage_service.repositories.message_repository import MessageRepository
from fanpage_service.repositories.notification_repository import NotificationRepository
from fanpage_service.repositories.user_repository import UserRepository, PackageRepository
from fanpage_service.repositories.exceptions import (
    RepositoryError, EntityNotFoundError, DuplicateEntityError, QueryError
)

__all__ = [
    "BaseRepository",
    "Pagination",
    "PaginatedResult",
    "UpsertResult",
    "FanpageRepository",
    "PostRepository",
    "CommentRepository",
    "MessageRepository",
    "NotificationRepository",
    "UserRepository",
    "PackageRepository",
    "RepositoryError",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "QueryError",
]
