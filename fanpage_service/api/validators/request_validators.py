"""
Request Validation Models
Pydantic models for request bodies of the fanpage management endpoints.

Bodies accept the camelCase keys used by the dashboard client as well as
snake_case field names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class ConnectFanpageRequest(RequestModel):
    """Connect one of the user's Facebook pages"""
    page_id: str = Field(..., alias="pageId", min_length=1, description="Facebook page id")


class PostContentRequest(RequestModel):
    """Create or edit a page post"""
    message: str = Field(..., min_length=1, max_length=63206, description="Post text")


class ReplyCommentRequest(RequestModel):
    """Reply to a comment as the page"""
    message: str = Field(..., min_length=1, max_length=8000, description="Reply text")


class SendMessageRequest(RequestModel):
    """Send a Messenger text as the page"""
    recipient_id: str = Field(..., alias="recipientId", min_length=1)
    message: str = Field(..., min_length=1, max_length=2000)
    fanpage_id: Optional[str] = Field(default=None, alias="fanpageId")

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "recipientId": "24012345678901234",
                "message": "Thanks for reaching out, your order has shipped."
            }
        }
    )


class FollowMessageRequest(RequestModel):
    followed: bool = True


class TypingEvent(RequestModel):
    """Payload of ``typing:start`` and ``typing:stop``"""
    recipient_id: str = Field(..., alias="recipientId", min_length=1)

    @field_validator("recipient_id")
    @classmethod
    def validate_recipient(cls, v):
        if not v.strip():
            raise ValueError("recipientId cannot be empty")
        return v
