"""
Database models package.
"""

from engagehub.core.database import Base
from engagehub.models.base import BaseModel
from engagehub.models.tenant import AIProvider, Platform, Tenant, TenantPlan, TenantStatus
from engagehub.models.role import Role
from engagehub.models.user import MembershipStatus, TenantMembership, User, UserType
from engagehub.models.post import Post
from engagehub.models.comment import Comment, CommentStatus, Sentiment
from engagehub.models.lead import Lead, LeadPriority, LeadSource, LeadStatus
from engagehub.models.inbox import Direction, InboxItem, InboxItemType, InboxStatus, Urgency

__all__ = [
    "Base",
    "BaseModel",
    "Tenant",
    "TenantStatus",
    "TenantPlan",
    "AIProvider",
    "Platform",
    "Role",
    "User",
    "UserType",
    "TenantMembership",
    "MembershipStatus",
    "Post",
    "Comment",
    "CommentStatus",
    "Sentiment",
    "Lead",
    "LeadSource",
    "LeadStatus",
    "LeadPriority",
    "InboxItem",
    "InboxItemType",
    "InboxStatus",
    "Direction",
    "Urgency",
]
