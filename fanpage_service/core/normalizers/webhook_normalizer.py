"""
Webhook payload normalizer.

Decodes a Facebook page webhook envelope into tagged event variants:

- ``MessagingEvent`` for Messenger ``messaging`` items carrying a message
- ``PostChange`` for ``feed`` changes on post-like items
- ``CommentChange`` for ``feed`` changes on comments and replies

Anything else (delivery and read receipts, unknown ``field`` or ``item``
tags) is dropped here and never reaches the services.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field

from fanpage_service.core.normalizers.graph_normalizer import (
    PlatformRecord, normalize_attachments, time_or_now
)

logger = structlog.get_logger(__name__)

FEED_FIELD = "feed"
POST_ITEMS = frozenset({"post", "status", "photo", "video", "share"})
COMMENT_ITEMS = frozenset({"comment", "reply"})

VERB_ADD = "add"
VERB_EDITED = "edited"
VERB_REMOVE = "remove"
VERB_HIDE = "hide"
VERB_UNHIDE = "unhide"


class WebhookEnvelope(BaseModel):
    """Top-level webhook body"""
    model_config = ConfigDict(extra="allow")

    object: str
    entry: List[Any] = Field(default_factory=list)


@dataclass
class MessagingEvent:
    page_id: str
    sender_id: str
    recipient_id: Optional[str]
    message_id: str
    text: str
    timestamp: datetime
    is_echo: bool = False
    reply_to: Optional[str] = None
    attachments: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def sent_by_page(self) -> bool:
        return self.is_echo or self.sender_id == self.page_id

    @property
    def conversation_id(self) -> str:
        """The customer's id, shared by both sides of the thread."""
        if self.sent_by_page and self.recipient_id:
            return self.recipient_id
        return self.sender_id

    def to_record(self, sender_name: str, sender_avatar: Optional[str] = None) -> PlatformRecord:
        relations = {"conversation_id": self.conversation_id}
        if self.reply_to:
            relations["parent_id"] = self.reply_to
        return PlatformRecord(
            external_id=self.message_id,
            fields={
                "message": self.text,
                "from_id": self.sender_id,
                "from_name": sender_name,
                "from_avatar": sender_avatar,
                "attachments": self.attachments,
                "created_time": self.timestamp,
            },
            relations=relations
        )


@dataclass
class PostChange:
    page_id: str
    post_id: str
    item: str
    verb: str
    message: Optional[str] = None
    picture: Optional[str] = None
    from_id: Optional[str] = None
    created_time: Optional[datetime] = None

    def to_record(self) -> PlatformRecord:
        fields: Dict[str, Any] = {"updated_time": self.created_time}
        if self.message is not None:
            fields["content"] = self.message
        if self.picture:
            fields["picture"] = self.picture
            fields["attachments"] = [{"type": self.item, "url": self.picture, "title": None}]
        return PlatformRecord(
            external_id=self.post_id,
            fields=fields,
            relations={"created_time": self.created_time}
        )


@dataclass
class CommentChange:
    page_id: str
    post_id: str
    comment_id: str
    item: str
    verb: str
    parent_id: Optional[str] = None
    message: Optional[str] = None
    from_id: Optional[str] = None
    from_name: Optional[str] = None
    created_time: Optional[datetime] = None
    attachments: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def reply_parent_id(self) -> Optional[str]:
        if self.parent_id and self.parent_id != self.post_id:
            return self.parent_id
        return None

    @property
    def authored_by_page(self) -> bool:
        return self.from_id is not None and self.from_id == self.page_id

    def to_record(self, from_avatar: Optional[str] = None) -> PlatformRecord:
        fields: Dict[str, Any] = {
            "from_id": self.from_id,
            "from_name": self.from_name,
        }
        if self.message is not None:
            fields["message"] = self.message
        if self.attachments:
            fields["attachments"] = self.attachments
        if from_avatar:
            fields["from_avatar"] = from_avatar
        if self.verb == VERB_HIDE:
            fields["is_hidden"] = True
        elif self.verb == VERB_UNHIDE:
            fields["is_hidden"] = False

        # Fields missing from the change must not blank out cached values
        fields = {k: v for k, v in fields.items() if v is not None}

        relations: Dict[str, Any] = {"created_time": self.created_time}
        if self.reply_parent_id:
            relations["parent_id"] = self.reply_parent_id
        return PlatformRecord(external_id=self.comment_id, fields=fields, relations=relations)


WebhookEvent = Union[MessagingEvent, PostChange, CommentChange]


@dataclass
class WebhookEntry:
    page_id: str
    events: List[WebhookEvent] = field(default_factory=list)


def decode_messaging(page_id: str, raw: Dict[str, Any]) -> Optional[MessagingEvent]:
    message = raw.get("message")
    if not isinstance(message, dict) or not message.get("mid"):
        return None

    sender_id = (raw.get("sender") or {}).get("id")
    if not sender_id:
        return None

    return MessagingEvent(
        page_id=page_id,
        sender_id=sender_id,
        recipient_id=(raw.get("recipient") or {}).get("id"),
        message_id=message["mid"],
        text=message.get("text") or "",
        timestamp=time_or_now(raw.get("timestamp")),
        is_echo=bool(message.get("is_echo", False)),
        reply_to=(message.get("reply_to") or {}).get("mid"),
        attachments=normalize_attachments(message.get("attachments")),
    )


def decode_change(page_id: str, raw: Dict[str, Any]) -> Optional[Union[PostChange, CommentChange]]:
    if raw.get("field") != FEED_FIELD:
        return None

    value = raw.get("value") or {}
    item = value.get("item")
    verb = value.get("verb")
    author = value.get("from") or {}
    created_time = time_or_now(value.get("created_time"))

    if item in POST_ITEMS and value.get("post_id"):
        return PostChange(
            page_id=page_id,
            post_id=value["post_id"],
            item=item,
            verb=verb,
            message=value.get("message"),
            picture=value.get("photo") or value.get("link"),
            from_id=author.get("id"),
            created_time=created_time,
        )

    if item in COMMENT_ITEMS and value.get("comment_id") and value.get("post_id"):
        attachments = []
        media_url = value.get("photo") or value.get("video")
        if media_url:
            attachments.append({
                "type": "photo" if value.get("photo") else "video",
                "url": media_url,
                "title": None,
            })
        return CommentChange(
            page_id=page_id,
            post_id=value["post_id"],
            comment_id=value["comment_id"],
            item=item,
            verb=verb,
            parent_id=value.get("parent_id"),
            message=value.get("message"),
            from_id=author.get("id"),
            from_name=author.get("name"),
            created_time=created_time,
            attachments=attachments,
        )

    return None


def decode_entry(raw: Any) -> Optional[WebhookEntry]:
    """Decode one envelope entry; None when it is not an object or carries no page id."""
    if not isinstance(raw, dict):
        logger.warning("Skipping non-object webhook entry", entry_type=type(raw).__name__)
        return None
    page_id = raw.get("id")
    if not page_id:
        logger.warning("Skipping webhook entry without page id")
        return None
    page_id = str(page_id)

    events: List[WebhookEvent] = []
    for item in raw.get("messaging") or []:
        event = decode_messaging(page_id, item)
        if event:
            events.append(event)
        else:
            logger.debug("Skipping messaging item without message", page_id=page_id)

    for change in raw.get("changes") or []:
        event = decode_change(page_id, change)
        if event:
            events.append(event)
        else:
            logger.debug(
                "Skipping unsupported change",
                page_id=page_id,
                field=change.get("field"),
                item=(change.get("value") or {}).get("item")
            )

    return WebhookEntry(page_id=page_id, events=events)
