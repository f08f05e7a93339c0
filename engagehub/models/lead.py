"""
Lead model: a sales lead created from a comment or entered manually.
"""

from enum import Enum
from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import BaseModel


class LeadSource(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    MANUAL = "manual"


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"


class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Lead(BaseModel):
    """
    Sales lead.

    ``comment_id`` is unique, so a comment can back at most one lead even
    if two lead sweeps race.
    """

    __tablename__ = "leads"

    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning tenant"
    )

    source: Mapped[LeadSource] = mapped_column(String(20), nullable=False)

    comment_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("comments.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
        comment="Source comment (internal id)"
    )

    # Contact
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    platform_profile_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Pipeline
    status: Mapped[LeadStatus] = mapped_column(String(20), default=LeadStatus.NEW, nullable=False)
    priority: Mapped[LeadPriority] = mapped_column(String(20), default=LeadPriority.MEDIUM, nullable=False)
    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="[0, 100]")

    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
        comment="Append-only [{text, created_by, created_at}]"
    )

    assigned_to_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    lead_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("idx_lead_tenant_status", "tenant_id", "status"),
        Index("idx_lead_tenant_created", "tenant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, name={self.name}, status={self.status})>"
