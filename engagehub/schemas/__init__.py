"""
Pydantic schemas package.
"""

from engagehub.schemas.common import (
    BaseSchema,
    ErrorResponse,
    MessageResponse,
    PaginatedResponse,
)
from engagehub.schemas.engagement import (
    CommentRead,
    InboxItemRead,
    LeadCreate,
    LeadRead,
    LeadUpdate,
    PostCreate,
    PostRead,
)
from engagehub.schemas.tenant import TenantRead, TenantSettingsUpdate, TenantStatusUpdate
from engagehub.schemas.user import MemberCreate, MemberRead, RoleCreate, RoleRead, RoleUpdate, UserRead

__all__ = [
    # Common
    "BaseSchema",
    "MessageResponse",
    "ErrorResponse",
    "PaginatedResponse",
    # Tenant
    "TenantRead",
    "TenantSettingsUpdate",
    "TenantStatusUpdate",
    # Users, members, roles
    "UserRead",
    "MemberCreate",
    "MemberRead",
    "RoleCreate",
    "RoleRead",
    "RoleUpdate",
    # Engagement
    "CommentRead",
    "LeadCreate",
    "LeadRead",
    "LeadUpdate",
    "InboxItemRead",
    "PostCreate",
    "PostRead",
]
