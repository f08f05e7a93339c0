"""
Comment, lead, inbox and tracked post endpoints.

All routes are tenant scoped under ``/tenants/{tenant_id}``.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.database import get_db
from engagehub.core.exceptions import ConflictError, ResourceNotFound, ValidationError
from engagehub.core.logging_config import get_logger
from engagehub.core.performance import PerformanceMonitor
from engagehub.features.auth.dependencies import CurrentUser
from engagehub.features.engagement.orchestrator import EngagementOrchestrator, engagement_orchestrator
from engagehub.features.ingestion.sync import CommentSync, comment_sync
from engagehub.features.tenancy.dependencies import require_permission
from engagehub.features.tenancy.permissions import Agent, capability_for, permission_engine
from engagehub.features.tenancy.resolver import TenantContext
from engagehub.models.base import utcnow
from engagehub.models.comment import Comment, CommentStatus, Sentiment
from engagehub.models.inbox import InboxItem, InboxItemType, InboxStatus
from engagehub.models.lead import Lead, LeadPriority, LeadStatus
from engagehub.models.post import Post
from engagehub.models.tenant import Platform
from engagehub.models.user import MembershipStatus, TenantMembership
from engagehub.schemas.common import MessageResponse, PaginatedResponse
from engagehub.schemas.engagement import (
    ClaimRequest,
    CommentRead,
    InboxAssign,
    InboxItemRead,
    InboxReadUpdate,
    LeadCreate,
    LeadRead,
    LeadUpdate,
    NoteCreate,
    PostCreate,
    PostRead,
    ReplyRequest,
    StatusUpdate,
    SyncRequest,
    SyncResponse,
)

logger = get_logger(__name__)

comments_router = APIRouter(prefix="/tenants/{tenant_id}/comments", tags=["Comments"])
leads_router = APIRouter(prefix="/tenants/{tenant_id}/leads", tags=["Leads"])
inbox_router = APIRouter(prefix="/tenants/{tenant_id}/inbox", tags=["Inbox"])
posts_router = APIRouter(prefix="/tenants/{tenant_id}/posts", tags=["Posts"])


def get_orchestrator() -> EngagementOrchestrator:
    return engagement_orchestrator


def get_comment_sync() -> CommentSync:
    return comment_sync


Orchestrator = Annotated[EngagementOrchestrator, Depends(get_orchestrator)]
Sync = Annotated[CommentSync, Depends(get_comment_sync)]


async def _page(db: AsyncSession, query, skip: int, limit: int) -> tuple[list, int]:
    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all()), total or 0


# ----------------------------------------------------------------------
# Comments
# ----------------------------------------------------------------------


@comments_router.get("/", response_model=PaginatedResponse[CommentRead])
async def list_comments(
    current_user: CurrentUser,
    context: Annotated[TenantContext, Depends(require_permission("comments", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    comment_status: CommentStatus | None = Query(None, alias="status"),
    platform: Platform | None = None,
    sentiment: Sentiment | None = None,
    is_replied: bool | None = None,
    is_lead: bool | None = None,
    assigned_to: str | None = None,
    search: str | None = Query(None, max_length=200),
) -> PaginatedResponse[CommentRead]:
    """
    List the tenant's comments, newest first.

    Agents only see comments assigned to them.
    """
    query = select(Comment).where(Comment.tenant_id == context.tenant_id)

    if isinstance(capability_for(current_user, context), Agent):
        query = query.where(Comment.assigned_to_id == current_user.id)
    elif assigned_to:
        query = query.where(Comment.assigned_to_id == assigned_to)

    if comment_status is not None:
        query = query.where(Comment.status == comment_status.value)
    if platform is not None:
        query = query.where(Comment.platform == platform.value)
    if sentiment is not None:
        query = query.where(Comment.sentiment == sentiment.value)
    if is_replied is not None:
        query = query.where(Comment.is_replied.is_(is_replied))
    if is_lead is not None:
        query = query.where(Comment.is_lead.is_(is_lead))
    if search:
        query = query.where(Comment.comment_text.ilike(f"%{search}%"))

    items, total = await _page(db, query.order_by(Comment.created_at.desc()), skip, limit)
    return PaginatedResponse[CommentRead](
        items=[CommentRead.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@comments_router.post("/sync", response_model=SyncResponse)
async def sync_comments(
    data: SyncRequest,
    context: Annotated[TenantContext, Depends(require_permission("comments", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    sync: Sync,
) -> SyncResponse:
    """Fetch one post's comments from the platform now."""
    async with PerformanceMonitor("manual_sync", tenant_id=context.tenant_id, platform=data.platform):
        summary = await sync.sync_post(db, context.tenant, data.platform, data.post_id)
    return SyncResponse(fetched=summary.fetched, created=summary.created)


@comments_router.get("/{comment_id}", response_model=CommentRead)
async def get_comment(
    comment_id: str,
    context: Annotated[TenantContext, Depends(require_permission("comments", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> Comment:
    return await orchestrator.get_comment(db, context.tenant_id, comment_id)


@comments_router.post("/{comment_id}/reply", response_model=CommentRead)
async def reply_to_comment(
    comment_id: str,
    data: ReplyRequest,
    context: Annotated[TenantContext, Depends(require_permission("comments", "reply"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> Comment:
    """
    Reply to a comment on its platform.

    With ``use_ai`` (and auto-reply enabled for the tenant) the reply text
    is generated; otherwise ``reply_text`` is sent as is.
    """
    return await orchestrator.reply_manually(
        db, context, comment_id, reply_text=data.reply_text, use_ai=data.use_ai,
    )


@comments_router.post("/{comment_id}/claim", response_model=CommentRead)
async def claim_comment(
    comment_id: str,
    data: ClaimRequest,
    current_user: CurrentUser,
    context: Annotated[TenantContext, Depends(require_permission("comments", "reply"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> Comment:
    """Assign a comment to the caller, or to another member with comments.moderate."""
    assignee_id = data.assignee_id or current_user.id
    if assignee_id != current_user.id:
        permission_engine.require(current_user, context, "comments", "moderate")

    return await orchestrator.claim(db, context, comment_id, assignee_id, actor_id=current_user.id)


@comments_router.patch("/{comment_id}/status", response_model=CommentRead)
async def update_comment_status(
    comment_id: str,
    data: StatusUpdate,
    current_user: CurrentUser,
    context: Annotated[TenantContext, Depends(require_permission("comments", "reply"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> Comment:
    if data.override:
        permission_engine.require(current_user, context, "comments", "moderate")

    return await orchestrator.update_status(db, context, comment_id, data.status, override=data.override)


# ----------------------------------------------------------------------
# Leads
# ----------------------------------------------------------------------


@leads_router.get("/", response_model=PaginatedResponse[LeadRead])
async def list_leads(
    context: Annotated[TenantContext, Depends(require_permission("leads", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    lead_status: LeadStatus | None = Query(None, alias="status"),
    priority: LeadPriority | None = None,
    assigned_to: str | None = None,
) -> PaginatedResponse[LeadRead]:
    query = select(Lead).where(Lead.tenant_id == context.tenant_id)
    if lead_status is not None:
        query = query.where(Lead.status == lead_status.value)
    if priority is not None:
        query = query.where(Lead.priority == priority.value)
    if assigned_to:
        query = query.where(Lead.assigned_to_id == assigned_to)

    items, total = await _page(db, query.order_by(Lead.score.desc(), Lead.created_at.desc()), skip, limit)
    return PaginatedResponse[LeadRead](
        items=[LeadRead.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@leads_router.post("/", response_model=LeadRead, status_code=status.HTTP_201_CREATED)
async def create_lead(
    data: LeadCreate,
    current_user: CurrentUser,
    context: Annotated[TenantContext, Depends(require_permission("leads", "create"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> Lead:
    return await orchestrator.create_lead(db, context, data.model_dump(), actor_id=current_user.id)


@leads_router.get("/{lead_id}", response_model=LeadRead)
async def get_lead(
    lead_id: str,
    context: Annotated[TenantContext, Depends(require_permission("leads", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> Lead:
    return await orchestrator.get_lead(db, context.tenant_id, lead_id)


@leads_router.patch("/{lead_id}", response_model=LeadRead)
async def update_lead(
    lead_id: str,
    data: LeadUpdate,
    context: Annotated[TenantContext, Depends(require_permission("leads", "update"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> Lead:
    return await orchestrator.update_lead(db, context, lead_id, data.model_dump(exclude_unset=True))


@leads_router.post("/{lead_id}/notes", response_model=LeadRead, status_code=status.HTTP_201_CREATED)
async def add_lead_note(
    lead_id: str,
    data: NoteCreate,
    current_user: CurrentUser,
    context: Annotated[TenantContext, Depends(require_permission("leads", "update"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> Lead:
    return await orchestrator.add_note(db, context, lead_id, data.text, author_id=current_user.id)


@leads_router.delete("/{lead_id}", response_model=MessageResponse)
async def delete_lead(
    lead_id: str,
    context: Annotated[TenantContext, Depends(require_permission("leads", "delete"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    orchestrator: Orchestrator,
) -> MessageResponse:
    await orchestrator.delete_lead(db, context, lead_id)
    return MessageResponse(message="Lead deleted")


# ----------------------------------------------------------------------
# Inbox
# ----------------------------------------------------------------------


async def _get_inbox_item(db: AsyncSession, tenant_id: str, item_id: str) -> InboxItem:
    result = await db.execute(
        select(InboxItem).where(InboxItem.id == item_id, InboxItem.tenant_id == tenant_id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise ResourceNotFound("Inbox item not found", details={"item_id": item_id})
    return item


@inbox_router.get("/", response_model=PaginatedResponse[InboxItemRead])
async def list_inbox(
    context: Annotated[TenantContext, Depends(require_permission("comments", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    item_type: InboxItemType | None = Query(None, alias="type"),
    platform: str | None = None,
    item_status: InboxStatus | None = Query(None, alias="status"),
    read: bool | None = None,
) -> PaginatedResponse[InboxItemRead]:
    """Unified inbox: DMs, mentions, reactions and other non-comment events."""
    query = select(InboxItem).where(InboxItem.tenant_id == context.tenant_id)
    if item_type is not None:
        query = query.where(InboxItem.type == item_type.value)
    if platform:
        query = query.where(InboxItem.platform == platform.lower())
    if item_status is not None:
        query = query.where(InboxItem.status == item_status.value)
    if read is not None:
        query = query.where(InboxItem.read.is_(read))

    items, total = await _page(db, query.order_by(InboxItem.created_at.desc()), skip, limit)
    return PaginatedResponse[InboxItemRead](
        items=[InboxItemRead.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@inbox_router.patch("/{item_id}/read", response_model=InboxItemRead)
async def mark_inbox_read(
    item_id: str,
    data: InboxReadUpdate,
    context: Annotated[TenantContext, Depends(require_permission("comments", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InboxItem:
    item = await _get_inbox_item(db, context.tenant_id, item_id)
    item.read = data.read
    await db.commit()
    return item


@inbox_router.patch("/{item_id}/assign", response_model=InboxItemRead)
async def assign_inbox_item(
    item_id: str,
    data: InboxAssign,
    context: Annotated[TenantContext, Depends(require_permission("comments", "moderate"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InboxItem:
    item = await _get_inbox_item(db, context.tenant_id, item_id)

    if data.user_id is not None:
        result = await db.execute(
            select(TenantMembership.id).where(
                TenantMembership.user_id == data.user_id,
                TenantMembership.tenant_id == context.tenant_id,
                TenantMembership.status == MembershipStatus.ACTIVE.value,
            )
        )
        if result.scalar_one_or_none() is None:
            raise ValidationError(
                "Assignee is not an active member of this tenant",
                details={"user_id": data.user_id},
            )

    item.assigned_to_id = data.user_id
    if data.user_id is not None and item.first_response_at is None:
        item.first_response_at = utcnow()
    await db.commit()

    logger.info("inbox_item_assigned", tenant_id=context.tenant_id, item_id=item.id, user_id=data.user_id)
    return item


# ----------------------------------------------------------------------
# Tracked posts
# ----------------------------------------------------------------------


@posts_router.get("/", response_model=list[PostRead])
async def list_posts(
    context: Annotated[TenantContext, Depends(require_permission("comments", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[Post]:
    result = await db.execute(
        select(Post).where(Post.tenant_id == context.tenant_id).order_by(Post.created_at.desc())
    )
    return list(result.scalars().all())


@posts_router.post("/", response_model=PostRead, status_code=status.HTTP_201_CREATED)
async def track_post(
    data: PostCreate,
    context: Annotated[TenantContext, Depends(require_permission("settings", "update"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Post:
    """Track a post so the sync job polls its comments."""
    tenant_id = context.tenant_id
    duplicate = ConflictError("Post is already tracked", details={"external_id": data.external_id})
    result = await db.execute(
        select(Post.id).where(
            Post.tenant_id == tenant_id,
            Post.platform == data.platform,
            Post.external_id == data.external_id,
        )
    )
    if result.scalar_one_or_none() is not None:
        raise duplicate

    post = Post(
        tenant_id=tenant_id,
        platform=data.platform,
        external_id=data.external_id,
        caption=data.caption,
        permalink=data.permalink,
    )
    db.add(post)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise duplicate from e

    logger.info("post_tracked", tenant_id=tenant_id, post_id=post.id, platform=data.platform)
    return post
