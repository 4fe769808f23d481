"""
Application constants and enumerations.

This module defines all constant values, enumerations, and
configuration defaults used throughout the Fanpage Service.
"""

from enum import Enum

# Service Information
SERVICE_NAME = "fanpage-service"
API_VERSION = "v1"
SERVICE_VERSION = "1.0.0"
SERVICE_DESCRIPTION = "Facebook fanpage management backend - Fanpage Service"

# API Configuration
API_PREFIX = f"/api/{API_VERSION}"
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Webhook Configuration
WEBHOOK_OBJECT_PAGE = "page"
WEBHOOK_ACK_BODY = "EVENT_RECEIVED"
WEBHOOK_SUBSCRIBE_MODE = "subscribe"
WEBHOOK_SIGNATURE_HEADER = "X-Hub-Signature-256"

# Display name used for message senders that are not the page itself
CUSTOMER_PLACEHOLDER_NAME = "Customer"

# Graph API field selections
GRAPH_PAGE_FIELDS = "id,name,access_token,category,picture"
GRAPH_POST_FIELDS = (
    "id,message,attachments,full_picture,created_time,updated_time,"
    "likes.summary(true),shares,comments.summary(true)"
)
GRAPH_COMMENT_FIELDS = "id,from,message,attachment,created_time,parent{id},is_hidden"
GRAPH_FEED_COMMENT_FIELDS = f"id,comments{{{GRAPH_COMMENT_FIELDS}}}"
GRAPH_CONVERSATION_FIELDS = "participants,messages{id,message,attachments,from,created_time}"

# WebSocket close code for rejected handshakes (policy violation)
WS_POLICY_VIOLATION = 1008


class RealtimeEvent(str, Enum):
    """Event names exchanged over the real-time channel."""
    # Server emitted
    MESSAGE_RECEIVED = "message:received"
    MESSAGE_FOLLOWED = "message:followed"
    POST_RECEIVED = "post:received"
    POST_UPDATED = "post:updated"
    POST_DELETED = "post:deleted"
    COMMENT_RECEIVED = "comment:received"
    COMMENT_UPDATED = "comment:updated"
    NOTIFICATION = "notification"
    TYPING_STARTED = "typing:started"
    TYPING_STOPPED = "typing:stopped"
    KEEPALIVE = "keepalive"
    PONG = "pong"
    ERROR = "error"

    # Client emitted
    MESSAGE_SEND = "message:send"
    TYPING_START = "typing:start"
    TYPING_STOP = "typing:stop"
    PING = "ping"


class ErrorCategory(str, Enum):
    """Error categorization for monitoring."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"
    UPSTREAM = "upstream"
