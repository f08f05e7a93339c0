"""
Pydantic schemas for comments, leads, inbox items and posts.
"""

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field

from engagehub.models.comment import CommentStatus, Sentiment
from engagehub.models.inbox import Direction, InboxItemType, InboxStatus, Urgency
from engagehub.models.lead import LeadPriority, LeadSource, LeadStatus
from engagehub.models.tenant import Platform
from engagehub.schemas.common import BaseSchema


# Comments

class CommentRead(BaseSchema):
    id: str
    tenant_id: str
    platform: str
    post_id: str
    post_url: str | None = None
    comment_id: str
    comment_text: str
    author_id: str | None = None
    author_username: str | None = None
    author_name: str | None = None
    sentiment: Sentiment
    sentiment_score: float
    is_replied: bool
    reply_text: str | None = None
    reply_sent_at: datetime | None = None
    is_auto_reply: bool
    status: CommentStatus
    assigned_to_id: str | None = None
    is_lead: bool
    lead_id: str | None = None
    like_count: int
    commented_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ReplyRequest(BaseSchema):
    """Manual reply. With ``use_ai`` the generated text replaces ``reply_text``."""

    reply_text: str | None = Field(None, max_length=2200)
    use_ai: bool = False


class ClaimRequest(BaseSchema):
    """Assign a comment. Defaults to the caller."""

    assignee_id: str | None = None


class StatusUpdate(BaseSchema):
    status: CommentStatus
    override: bool = Field(False, description="Allow a backward move (requires comments.moderate)")


class SyncRequest(BaseSchema):
    platform: Platform
    post_id: str = Field(..., min_length=1)


class SyncResponse(BaseSchema):
    fetched: int
    created: int


# Leads

class LeadNote(BaseSchema):
    text: str
    created_by: str | None = None
    created_at: str


class LeadRead(BaseSchema):
    id: str
    tenant_id: str
    source: LeadSource
    comment_id: str | None = None
    name: str
    email: str | None = None
    phone: str | None = None
    username: str | None = None
    platform_profile_url: str | None = None
    status: LeadStatus
    priority: LeadPriority
    score: int
    tags: list[str]
    notes: list[LeadNote]
    assigned_to_id: str | None = None
    lead_metadata: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class LeadCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    username: str | None = Field(None, max_length=255)
    platform_profile_url: str | None = Field(None, max_length=500)
    comment_id: str | None = Field(None, description="Link the lead to an existing comment")
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.MEDIUM
    score: int = Field(0, ge=0, le=100)
    tags: list[str] = Field(default_factory=list)
    assigned_to_id: str | None = None


class LeadUpdate(BaseSchema):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    username: str | None = Field(None, max_length=255)
    status: LeadStatus | None = None
    priority: LeadPriority | None = None
    score: int | None = Field(None, ge=0, le=100)
    tags: list[str] | None = None
    assigned_to_id: str | None = None


class NoteCreate(BaseSchema):
    text: str = Field(..., min_length=1, max_length=5000)


# Inbox

class InboxItemRead(BaseSchema):
    id: str
    tenant_id: str
    type: InboxItemType
    platform: str
    post_id: str | None = None
    external_id: str | None = None
    thread_id: str | None = None
    message_text: str
    direction: Direction
    author_id: str | None = None
    author_name: str | None = None
    author_username: str | None = None
    recipient: Any = None
    read: bool
    status: InboxStatus
    urgency: Urgency
    sentiment: Sentiment
    sentiment_score: float
    assigned_to_id: str | None = None
    created_at: datetime


class InboxReadUpdate(BaseSchema):
    read: bool = True


class InboxAssign(BaseSchema):
    user_id: str | None = None


# Posts

class PostCreate(BaseSchema):
    platform: Platform
    external_id: str = Field(..., min_length=1, max_length=255)
    caption: str | None = None
    permalink: str | None = None


class PostRead(BaseSchema):
    id: str
    tenant_id: str
    platform: str
    external_id: str
    caption: str | None = None
    permalink: str | None = None
    last_synced_at: datetime | None = None
    created_at: datetime
