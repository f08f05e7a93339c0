"""
Platform administration endpoints (super admin only).

Cross-tenant listings, platform statistics, user management and the
destructive tenant delete.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.database import get_db
from engagehub.features.admin.schemas import PlatformStats, TenantDeleted, UserAdminUpdate
from engagehub.features.admin.service import platform_admin_service
from engagehub.features.auth.dependencies import CurrentSuperAdmin
from engagehub.features.tenancy.resolver import parse_tenant_id
from engagehub.models.comment import Comment, CommentStatus, Sentiment
from engagehub.models.lead import Lead, LeadPriority, LeadSource, LeadStatus
from engagehub.models.tenant import Platform
from engagehub.models.user import User, UserType
from engagehub.schemas.common import MessageResponse, PaginatedResponse
from engagehub.schemas.engagement import CommentRead, LeadRead
from engagehub.schemas.user import UserRead

router = APIRouter(prefix="/admin", tags=["Platform Admin"])


async def _page(db: AsyncSession, query, skip: int, limit: int) -> tuple[list, int]:
    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all()), total or 0


@router.get("/stats", response_model=PlatformStats)
async def platform_stats(
    current_user: CurrentSuperAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PlatformStats:
    return await platform_admin_service.stats(db)


@router.delete("/tenants/{tenant_id}", response_model=TenantDeleted)
async def delete_tenant(
    tenant_id: str,
    current_user: CurrentSuperAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TenantDeleted:
    """Permanently delete a tenant with its comments, leads, inbox, posts, roles and memberships."""
    tenant_id = parse_tenant_id(tenant_id)
    deleted = await platform_admin_service.delete_tenant(db, tenant_id, actor_id=current_user.id)
    return TenantDeleted(tenant_id=tenant_id, deleted=deleted)


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------


@router.get("/users", response_model=PaginatedResponse[UserRead])
async def list_users(
    current_user: CurrentSuperAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    tenant_id: str | None = None,
    user_type: UserType | None = None,
    is_active: bool | None = None,
) -> PaginatedResponse[UserRead]:
    query = platform_admin_service.users_query(
        tenant_id=tenant_id,
        user_type=user_type.value if user_type else None,
        is_active=is_active,
    )
    items, total = await _page(db, query, skip, limit)
    return PaginatedResponse[UserRead](
        items=[UserRead.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.patch("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    data: UserAdminUpdate,
    current_user: CurrentSuperAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    return await platform_admin_service.update_user(db, current_user, user_id, data.model_dump(exclude_unset=True))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    current_user: CurrentSuperAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await platform_admin_service.delete_user(db, current_user, user_id)
    return MessageResponse(message="User deleted")


# ----------------------------------------------------------------------
# Cross-tenant listings
# ----------------------------------------------------------------------


@router.get("/comments", response_model=PaginatedResponse[CommentRead])
async def list_all_comments(
    current_user: CurrentSuperAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    tenant_id: str | None = None,
    comment_status: CommentStatus | None = Query(None, alias="status"),
    sentiment: Sentiment | None = None,
    platform: Platform | None = None,
) -> PaginatedResponse[CommentRead]:
    query = select(Comment)
    if tenant_id:
        query = query.where(Comment.tenant_id == tenant_id)
    if comment_status is not None:
        query = query.where(Comment.status == comment_status.value)
    if sentiment is not None:
        query = query.where(Comment.sentiment == sentiment.value)
    if platform is not None:
        query = query.where(Comment.platform == platform.value)

    items, total = await _page(db, query.order_by(Comment.created_at.desc()), skip, limit)
    return PaginatedResponse[CommentRead](
        items=[CommentRead.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/leads", response_model=PaginatedResponse[LeadRead])
async def list_all_leads(
    current_user: CurrentSuperAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    tenant_id: str | None = None,
    lead_status: LeadStatus | None = Query(None, alias="status"),
    priority: LeadPriority | None = None,
    source: LeadSource | None = None,
) -> PaginatedResponse[LeadRead]:
    query = select(Lead)
    if tenant_id:
        query = query.where(Lead.tenant_id == tenant_id)
    if lead_status is not None:
        query = query.where(Lead.status == lead_status.value)
    if priority is not None:
        query = query.where(Lead.priority == priority.value)
    if source is not None:
        query = query.where(Lead.source == source.value)

    items, total = await _page(db, query.order_by(Lead.created_at.desc()), skip, limit)
    return PaginatedResponse[LeadRead](
        items=[LeadRead.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )
