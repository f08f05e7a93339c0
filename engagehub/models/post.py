"""
Post model: a tenant's platform post whose comments are synced.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import BaseModel


class Post(BaseModel):
    """Tracked post. The sync job polls comments for every tracked post."""

    __tablename__ = "posts"

    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False, comment="Platform post id")
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    permalink: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "platform", "external_id", name="uq_post_tenant_platform_external"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, platform={self.platform}, external_id={self.external_id})>"
