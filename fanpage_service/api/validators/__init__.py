from fanpage_service.api.validators.request_validators import (
    ConnectFanpageRequest,
    FollowMessageRequest,
    PostContentRequest,
    ReplyCommentRequest,
    SendMessageRequest,
    TypingEvent,
)

__all__ = [
    "ConnectFanpageRequest",
    "FollowMessageRequest",
    "PostContentRequest",
    "ReplyCommentRequest",
    "SendMessageRequest",
    "TypingEvent",
]
