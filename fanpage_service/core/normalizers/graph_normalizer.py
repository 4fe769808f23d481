"""
Graph API payload normalizer.

Converts raw Graph API objects (posts, comments, conversation messages)
into ``PlatformRecord`` values the reconciliation engine can upsert.
Each record splits its data into mutable ``fields`` (overwritten on every
pass) and ``relations`` (written once when the row is created).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from fanpage_service.utils.date_utils import parse_platform_time, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class PlatformRecord:
    """One platform entity ready for upsert by its external id"""
    external_id: Optional[str]
    fields: Dict[str, Any] = field(default_factory=dict)
    relations: Dict[str, Any] = field(default_factory=dict)


def time_or_now(value: Any) -> Any:
    try:
        return parse_platform_time(value) or utc_now()
    except (ValueError, OverflowError, OSError):
        logger.warning("Unparseable platform time, using current time", value=str(value))
        return utc_now()


def _summary_count(data: Dict[str, Any], key: str) -> int:
    return int(((data.get(key) or {}).get("summary") or {}).get("total_count", 0) or 0)


def picture_url(picture: Any) -> Optional[str]:
    # Graph returns either a bare URL or {"data": {"url": ...}}
    if isinstance(picture, str):
        return picture
    if isinstance(picture, dict):
        return (picture.get("data") or {}).get("url")
    return None


def normalize_attachment(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a Graph or Messenger attachment into ``{type, url, title}``."""
    url = raw.get("url")
    media = raw.get("media") or {}
    payload = raw.get("payload") or {}
    image_data = raw.get("image_data") or {}

    if not url:
        url = (
            (media.get("image") or {}).get("src")
            or payload.get("url")
            or image_data.get("url")
            or raw.get("file_url")
        )

    return {
        "type": raw.get("type") or raw.get("mime_type"),
        "url": url,
        "title": raw.get("title") or raw.get("name"),
    }


def normalize_attachments(raw: Any) -> List[Dict[str, Any]]:
    """Accept a list, a single attachment or a ``{"data": [...]}`` wrapper."""
    if not raw:
        return []
    if isinstance(raw, dict):
        raw = raw.get("data", [raw])
    return [normalize_attachment(item) for item in raw if isinstance(item, dict)]


def post_record(raw: Dict[str, Any]) -> PlatformRecord:
    """Graph post → record. Counters are taken as reported, never summed."""
    return PlatformRecord(
        external_id=raw.get("id"),
        fields={
            "content": raw.get("message") or raw.get("story") or "",
            "picture": raw.get("full_picture"),
            "attachments": normalize_attachments(raw.get("attachments")),
            "likes": _summary_count(raw, "likes"),
            "shares": int((raw.get("shares") or {}).get("count", 0) or 0),
            "comments_count": _summary_count(raw, "comments"),
            "created_time": time_or_now(raw.get("created_time")),
            "updated_time": time_or_now(raw.get("updated_time") or raw.get("created_time")),
        }
    )


def comment_record(raw: Dict[str, Any], post_external_id: Optional[str] = None) -> PlatformRecord:
    """
    Graph comment → record.

    The parent pointer is kept only for replies; a top-level comment
    reports the post itself as its parent.
    """
    author = raw.get("from") or {}
    parent_id = (raw.get("parent") or {}).get("id")
    relations = {}
    if parent_id and parent_id != post_external_id:
        relations["parent_id"] = parent_id

    return PlatformRecord(
        external_id=raw.get("id"),
        fields={
            "message": raw.get("message") or "",
            "from_id": author.get("id"),
            "from_name": author.get("name"),
            "from_avatar": picture_url(author.get("picture")),
            "attachments": normalize_attachments(raw.get("attachment")),
            "is_hidden": bool(raw.get("is_hidden", False)),
            "created_time": time_or_now(raw.get("created_time")),
        },
        relations=relations
    )


def conversation_partner_id(conversation: Dict[str, Any], page_id: str) -> Optional[str]:
    """Id of the participant that is not the page; used as the conversation key."""
    participants = (conversation.get("participants") or {}).get("data", [])
    for participant in participants:
        if participant.get("id") and participant.get("id") != page_id:
            return participant["id"]
    return None


def message_record(raw: Dict[str, Any], conversation_id: str) -> PlatformRecord:
    author = raw.get("from") or {}
    return PlatformRecord(
        external_id=raw.get("id"),
        fields={
            "message": raw.get("message") or "",
            "from_id": author.get("id"),
            "from_name": author.get("name"),
            "attachments": normalize_attachments(raw.get("attachments")),
            "created_time": time_or_now(raw.get("created_time")),
        },
        relations={"conversation_id": conversation_id}
    )


def conversation_message_records(
        conversations: List[Dict[str, Any]],
        page_id: str
) -> Dict[str, List[PlatformRecord]]:
    """
    Group the embedded messages of each conversation by conversation key.

    Conversations without an identifiable partner are skipped.
    """
    grouped: Dict[str, List[PlatformRecord]] = {}
    for conversation in conversations:
        partner_id = conversation_partner_id(conversation, page_id)
        if not partner_id:
            logger.warning(
                "Skipping conversation without partner",
                conversation=conversation.get("id"),
                page_id=page_id
            )
            continue
        messages = (conversation.get("messages") or {}).get("data", [])
        grouped.setdefault(partner_id, []).extend(
            message_record(message, partner_id) for message in messages
        )
    return grouped
