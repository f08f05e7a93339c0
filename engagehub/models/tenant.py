"""
Tenant model for multi-tenancy.

Each tenant is an organization whose social accounts, comments, leads and
team are isolated from every other tenant.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import BaseModel


class TenantStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class TenantPlan(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class AIProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    CUSTOM = "custom"


class Platform(str, Enum):
    """Social platforms with a connector."""
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"


class Tenant(BaseModel):
    """
    Tenant (organization) model.

    Holds:
    - Identity (slug and contact email are unique)
    - Lifecycle status
    - Feature toggles for the engagement pipeline
    - AI reply configuration and platform credentials
    """

    __tablename__ = "tenants"

    # Identity
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Organization name"
    )

    slug: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        comment="URL-friendly identifier (e.g., 'acme-corp')"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Contact email"
    )

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    plan: Mapped[TenantPlan] = mapped_column(
        String(20),
        default=TenantPlan.FREE,
        nullable=False,
    )

    status: Mapped[TenantStatus] = mapped_column(
        String(20),
        default=TenantStatus.ACTIVE,
        nullable=False,
        index=True,
        comment="active | suspended | inactive"
    )

    # Feature toggles
    instagram_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    facebook_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    auto_reply_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    lead_generation_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # AI configuration
    ai_provider: Mapped[AIProvider] = mapped_column(
        String(20),
        default=AIProvider.OPENAI,
        nullable=False,
    )
    ai_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ai_temperature: Mapped[float] = mapped_column(Float, default=0.7, nullable=False)

    # Platform credentials
    instagram_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    instagram_page_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    instagram_last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    facebook_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    facebook_page_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    facebook_last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    def platform_enabled(self, platform: str) -> bool:
        if platform == Platform.INSTAGRAM:
            return self.instagram_enabled
        if platform == Platform.FACEBOOK:
            return self.facebook_enabled
        return False

    def platform_credentials(self, platform: str) -> tuple[str | None, str | None]:
        """Return (access_token, page_id) for a platform."""
        if platform == Platform.INSTAGRAM:
            return self.instagram_access_token, self.instagram_page_id
        if platform == Platform.FACEBOOK:
            return self.facebook_access_token, self.facebook_page_id
        return None, None

    def mark_synced(self, platform: str, when: datetime) -> None:
        if platform == Platform.INSTAGRAM:
            self.instagram_last_sync_at = when
        elif platform == Platform.FACEBOOK:
            self.facebook_last_sync_at = when

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug})>"
