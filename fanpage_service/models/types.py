"""
Common type definitions, enums, and type aliases used across the application.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


# ============================================================================
# ENUMS FOR TYPE SAFETY
# ============================================================================

class NotificationType(str, Enum):
    """Kinds of notification stored for a user"""
    MESSAGE = "message"
    COMMENT = "comment"
    PAYMENT = "payment"
    PACKAGE_EXPIRY = "package_expiry"


class SyncEntity(str, Enum):
    """Entity kinds the reconciliation engine handles"""
    POST = "post"
    COMMENT = "comment"
    MESSAGE = "message"


class ConnectionState(str, Enum):
    """Lifecycle of a real-time connection"""
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    JOINED = "joined"
    ACTIVE = "active"
    IDLE = "idle"
    DISCONNECTED = "disconnected"


# ============================================================================
# TYPE ALIASES
# ============================================================================

UserId = str
PageId = str
ExternalId = str
ConversationId = str


# ============================================================================
# SHARED VALUE OBJECTS
# ============================================================================

class Attachment(BaseModel):
    """Media reference carried by posts, comments and messages"""
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
