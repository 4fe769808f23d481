"""
Normalizers turning Graph API listings and webhook deliveries into
``PlatformRecord`` values the reconciliation engine can store.
"""

from fanpage_service.core.normalizers.graph_normalizer import (
    PlatformRecord,
    comment_record,
    conversation_message_records,
    message_record,
    post_record,
)
from fanpage_service.core.normalizers.webhook_normalizer import (
    CommentChange,
    MessagingEvent,
    PostChange,
    WebhookEntry,
    WebhookEnvelope,
    decode_entry,
)

__all__ = [
    "PlatformRecord",
    "comment_record",
    "conversation_message_records",
    "message_record",
    "post_record",
    "CommentChange",
    "MessagingEvent",
    "PostChange",
    "WebhookEntry",
    "WebhookEnvelope",
    "decode_entry",
]
