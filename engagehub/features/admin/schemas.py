"""
Schemas for the platform (super admin) endpoints.
"""

from pydantic import EmailStr, Field

from engagehub.models.tenant import TenantStatus
from engagehub.models.user import UserType
from engagehub.schemas.common import BaseSchema


class UserAdminUpdate(BaseSchema):
    """Cross-tenant user update (all fields optional)."""

    email: EmailStr | None = None
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    user_type: UserType | None = None
    is_active: bool | None = None


class ActiveTotal(BaseSchema):
    total: int
    active: int


class CommentStats(BaseSchema):
    total: int
    new: int
    replied: int
    by_sentiment: dict[str, int]
    by_platform: dict[str, int]


class LeadStats(BaseSchema):
    total: int
    new: int
    qualified: int


class TenantActivity(BaseSchema):
    id: str
    name: str
    slug: str
    status: TenantStatus
    comment_count: int
    lead_count: int


class PlatformStats(BaseSchema):
    tenants: ActiveTotal
    users: ActiveTotal
    comments: CommentStats
    leads: LeadStats
    top_tenants: list[TenantActivity]


class TenantDeleted(BaseSchema):
    tenant_id: str
    deleted: dict[str, int]
