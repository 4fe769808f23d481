"""MongoDB document models."""

from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.models.mongo.post_model import PostDocument
from fanpage_service.models.mongo.comment_model import CommentDocument
from fanpage_service.models.mongo.message_model import MessageDocument
from fanpage_service.models.mongo.notification_model import NotificationDocument
from fanpage_service.models.mongo.user_model import UserDocument, PackageDocument

__all__ = [
    "FanpageDocument",
    "PostDocument",
    "CommentDocument",
    "MessageDocument",
    "NotificationDocument",
    "UserDocument",
    "PackageDocument",
]
