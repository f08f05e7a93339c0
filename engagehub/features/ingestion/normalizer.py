"""
Normalization of raw platform events.

Webhook payloads and polled comments arrive in several shapes; everything
is mapped onto ``NormalizedEvent`` before it is stored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from engagehub.core.exceptions import ValidationError
from engagehub.models.inbox import Direction, InboxItemType, Urgency
from engagehub.models.tenant import Platform

KNOWN_PLATFORMS = {p.value for p in Platform}
OTHER_PLATFORM = "other"


@dataclass
class NormalizedEvent:
    type: str
    platform: str
    external_id: str | None
    post_id: str | None
    text: str
    direction: str = Direction.INBOUND.value
    urgency: str = Urgency.MEDIUM.value
    thread_id: str | None = None
    post_url: str | None = None
    author_id: str | None = None
    author_name: str | None = None
    author_username: str | None = None
    recipient: Any = None
    like_count: int = 0
    occurred_at: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_comment(self) -> bool:
        """
        Whether the event is stored as a Comment rather than an InboxItem.

        Only inbound comments on a supported platform that carry both an
        external id and a post id qualify.
        """
        return (
            self.type == InboxItemType.COMMENT.value
            and self.direction == Direction.INBOUND.value
            and self.platform in KNOWN_PLATFORMS
            and bool(self.external_id)
            and bool(self.post_id)
        )


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def normalize_platform(value: Any) -> str:
    value = getattr(value, "value", value)
    if not value:
        return OTHER_PLATFORM
    value = str(value).strip().lower()
    return value if value in KNOWN_PLATFORMS else OTHER_PLATFORM


def normalize_event(raw: dict[str, Any], platform: str | None = None) -> NormalizedEvent:
    """
    Map a raw payload to a ``NormalizedEvent``.

    Raises:
        ValidationError: Payload is not a JSON object
    """
    if not isinstance(raw, dict):
        raise ValidationError("Event payload must be a JSON object")

    item_type = str(_first(raw, "type", "itemType") or InboxItemType.COMMENT.value).lower()
    if item_type not in {t.value for t in InboxItemType}:
        # Platforms add event kinds faster than we model them; keep them as comments
        item_type = InboxItemType.COMMENT.value

    direction = str(raw.get("direction") or Direction.INBOUND.value).lower()
    if direction not in {d.value for d in Direction}:
        direction = Direction.INBOUND.value

    urgency = str(raw.get("urgency") or Urgency.MEDIUM.value).lower()
    if urgency not in {u.value for u in Urgency}:
        urgency = Urgency.MEDIUM.value

    author = _first(raw, "from", "author") or {}
    if isinstance(author, str):
        author = {"name": author}
    elif not isinstance(author, dict):
        author = {}

    text = _first(raw, "message", "text", "body")
    try:
        like_count = int(raw.get("like_count") or raw.get("likeCount") or 0)
    except (TypeError, ValueError):
        like_count = 0

    return NormalizedEvent(
        type=item_type,
        platform=normalize_platform(platform or raw.get("platform")),
        external_id=_as_str(_first(raw, "id", "externalId", "commentId", "comment_id")),
        post_id=_as_str(_first(raw, "postId", "post_id")),
        text=str(text) if text is not None else "",
        direction=direction,
        urgency=urgency,
        thread_id=_as_str(_first(raw, "threadId", "thread_id", "conversation_id")),
        post_url=_as_str(_first(raw, "postUrl", "post_url", "permalink")),
        author_id=_as_str(author.get("id")),
        author_name=_as_str(author.get("name")),
        author_username=_as_str(author.get("username")),
        recipient=raw.get("to"),
        like_count=like_count,
        occurred_at=_parse_timestamp(_first(raw, "timestamp", "created_time")),
        raw=raw,
    )
