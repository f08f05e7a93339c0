"""
InboxItem model: generalized inbound/outbound event for the unified inbox.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import BaseModel
from engagehub.models.comment import Sentiment


class InboxItemType(str, Enum):
    COMMENT = "comment"
    DM = "dm"
    REACTION = "reaction"
    MENTION = "mention"


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class InboxStatus(str, Enum):
    OPEN = "open"
    PENDING = "pending"
    CLOSED = "closed"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InboxItem(BaseModel):
    """
    Inbox item.

    Deduplicated on ``(tenant_id, external_id)`` when the platform supplies
    an id; items without one are always stored.
    """

    __tablename__ = "inbox_items"

    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[InboxItemType] = mapped_column(String(20), nullable=False)
    platform: Mapped[str] = mapped_column(String(20), default="other", nullable=False)

    post_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    thread_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    message_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    direction: Mapped[Direction] = mapped_column(String(20), default=Direction.INBOUND, nullable=False)

    author_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    author_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    author_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recipient: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    status: Mapped[InboxStatus] = mapped_column(String(20), default=InboxStatus.OPEN, nullable=False)
    urgency: Mapped[Urgency] = mapped_column(String(20), default=Urgency.MEDIUM, nullable=False)

    sentiment: Mapped[Sentiment] = mapped_column(String(20), default=Sentiment.NEUTRAL, nullable=False)
    sentiment_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    assigned_to_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    first_response_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    raw_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "external_id", name="uq_inbox_tenant_external_id"),
        Index("idx_inbox_tenant_type_created", "tenant_id", "type", "created_at"),
        Index("idx_inbox_tenant_platform", "tenant_id", "platform"),
    )

    def __repr__(self) -> str:
        return f"<InboxItem(id={self.id}, type={self.type}, platform={self.platform})>"
