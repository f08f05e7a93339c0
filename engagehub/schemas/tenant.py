"""
Pydantic schemas for Tenant.
"""

from datetime import datetime

from pydantic import Field

from engagehub.models.tenant import AIProvider, TenantPlan, TenantStatus
from engagehub.schemas.common import BaseSchema


class TenantRead(BaseSchema):
    """Tenant as visible to its members. Credentials are never returned."""

    id: str
    name: str
    slug: str
    email: str
    phone: str | None = None
    plan: TenantPlan
    status: TenantStatus
    instagram_enabled: bool
    facebook_enabled: bool
    auto_reply_enabled: bool
    lead_generation_enabled: bool
    ai_provider: AIProvider
    ai_model: str | None = None
    ai_temperature: float
    instagram_page_id: str | None = None
    facebook_page_id: str | None = None
    instagram_last_sync_at: datetime | None = None
    facebook_last_sync_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TenantSettingsUpdate(BaseSchema):
    """Tenant settings update (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=50)

    instagram_enabled: bool | None = None
    facebook_enabled: bool | None = None
    auto_reply_enabled: bool | None = None
    lead_generation_enabled: bool | None = None

    ai_provider: AIProvider | None = None
    ai_api_key: str | None = None
    ai_model: str | None = Field(None, max_length=100)
    ai_temperature: float | None = Field(None, ge=0.0, le=2.0)

    instagram_access_token: str | None = None
    instagram_page_id: str | None = Field(None, max_length=100)
    facebook_access_token: str | None = None
    facebook_page_id: str | None = Field(None, max_length=100)


class TenantStatusUpdate(BaseSchema):
    """Super admin lifecycle change."""

    status: TenantStatus
