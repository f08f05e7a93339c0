"""
Comment model: a social platform comment ingested for a tenant.
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
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import BaseModel


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class CommentStatus(str, Enum):
    """
    Comment workflow status.

    Forward order: new -> in_progress -> replied -> resolved | archived.
    """
    NEW = "new"
    IN_PROGRESS = "in_progress"
    REPLIED = "replied"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


class Comment(BaseModel):
    """
    Ingested comment.

    ``(tenant_id, comment_id)`` is unique: it is the idempotency key that
    keeps re-delivered or re-polled comments from being stored twice.
    """

    __tablename__ = "comments"

    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning tenant"
    )

    platform: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="instagram | facebook"
    )

    post_id: Mapped[str] = mapped_column(String(255), nullable=False)
    post_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    comment_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Platform comment id"
    )

    comment_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Author
    author_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    author_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    author_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Classification
    sentiment: Mapped[Sentiment] = mapped_column(
        String(20),
        default=Sentiment.NEUTRAL,
        nullable=False,
        index=True,
    )
    sentiment_score: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
        comment="[-1, 1]"
    )

    # Reply state
    is_replied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reply_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    reply_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_auto_reply: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    status: Mapped[CommentStatus] = mapped_column(
        String(20),
        default=CommentStatus.NEW,
        nullable=False,
    )

    assigned_to_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Lead linkage
    is_lead: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    lead_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("leads.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
    )

    # Platform metadata
    like_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    commented_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    raw_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "comment_id", name="uq_comment_tenant_comment_id"),
        Index("idx_comment_tenant_status", "tenant_id", "status"),
        Index("idx_comment_tenant_created", "tenant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, comment_id={self.comment_id}, status={self.status})>"
