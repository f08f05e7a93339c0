"""
Tenant, role and team management endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.database import get_db
from engagehub.core.exceptions import TenantNotFound
from engagehub.core.logging_config import get_logger
from engagehub.features.auth.dependencies import CurrentSuperAdmin, CurrentUser
from engagehub.features.tenancy.dependencies import require_permission
from engagehub.features.tenancy.permissions import permission_engine
from engagehub.features.tenancy.resolver import TenantContext, parse_tenant_id
from engagehub.features.tenancy.service import tenant_service
from engagehub.models.role import Role
from engagehub.models.tenant import Tenant
from engagehub.models.user import TenantMembership, User
from engagehub.schemas.common import MessageResponse
from engagehub.schemas.tenant import TenantRead, TenantSettingsUpdate, TenantStatusUpdate
from engagehub.schemas.user import (
    MemberCreate,
    MemberRead,
    MemberRoleUpdate,
    RoleCreate,
    RoleRead,
    RoleUpdate,
    UserRead,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])


def _member_read(membership: TenantMembership, user: User) -> MemberRead:
    return MemberRead(
        user=UserRead.model_validate(user),
        role_id=membership.role_id,
        status=membership.status,
        joined_at=membership.joined_at,
    )


@router.get("/", response_model=list[TenantRead])
async def list_tenants(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentSuperAdmin,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> list[Tenant]:
    """List all tenants (super admin only)."""
    result = await db.execute(
        select(Tenant)
        .offset(skip)
        .limit(limit)
        .order_by(Tenant.created_at.desc())
    )
    return list(result.scalars().all())


@router.patch("/{tenant_id}/status", response_model=TenantRead)
async def update_tenant_status(
    tenant_id: str,
    data: TenantStatusUpdate,
    current_user: CurrentSuperAdmin,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Tenant:
    """
    Suspend, deactivate or reactivate a tenant (super admin only).

    Loaded directly so inactive tenants can be reactivated.
    """
    tenant = await db.get(Tenant, parse_tenant_id(tenant_id))
    if tenant is None:
        raise TenantNotFound("Tenant not found", details={"tenant_id": tenant_id})

    tenant.status = data.status
    await db.commit()

    logger.info("tenant_status_changed", tenant_id=tenant.id, status=data.status, by=current_user.id)
    return tenant


@router.get("/{tenant_id}", response_model=TenantRead)
async def get_tenant(
    context: Annotated[TenantContext, Depends(require_permission("settings", "view"))],
) -> Tenant:
    return context.tenant


@router.patch("/{tenant_id}", response_model=TenantRead)
async def update_tenant(
    data: TenantSettingsUpdate,
    context: Annotated[TenantContext, Depends(require_permission("settings", "update"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Tenant:
    """Update tenant settings, platform credentials and AI configuration."""
    return await tenant_service.update_settings(db, context, data.model_dump(exclude_unset=True))


# ----------------------------------------------------------------------
# Roles
# ----------------------------------------------------------------------


@router.get("/{tenant_id}/roles", response_model=list[RoleRead])
async def list_roles(
    context: Annotated[TenantContext, Depends(require_permission("team", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[Role]:
    return await tenant_service.list_roles(db, context.tenant_id)


@router.post("/{tenant_id}/roles", response_model=RoleRead, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    context: Annotated[TenantContext, Depends(require_permission("team", "manageRoles"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Role:
    return await tenant_service.create_role(
        db, context, name=data.name, level=data.level, permissions=data.permissions,
    )


@router.patch("/{tenant_id}/roles/{role_id}", response_model=RoleRead)
async def update_role(
    role_id: str,
    data: RoleUpdate,
    context: Annotated[TenantContext, Depends(require_permission("team", "manageRoles"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Role:
    return await tenant_service.update_role(db, context, role_id, data.model_dump(exclude_unset=True))


@router.delete("/{tenant_id}/roles/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: str,
    context: Annotated[TenantContext, Depends(require_permission("team", "manageRoles"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await tenant_service.delete_role(db, context, role_id)
    return MessageResponse(message="Role deleted")


# ----------------------------------------------------------------------
# Members
# ----------------------------------------------------------------------


@router.get("/{tenant_id}/members", response_model=list[MemberRead])
async def list_members(
    context: Annotated[TenantContext, Depends(require_permission("team", "view"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[MemberRead]:
    members = await tenant_service.list_members(db, context.tenant_id)
    return [_member_read(membership, user) for membership, user in members]


@router.post("/{tenant_id}/members", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
async def add_member(
    data: MemberCreate,
    current_user: CurrentUser,
    context: Annotated[TenantContext, Depends(require_permission("team", "invite"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MemberRead:
    """
    Add a member to the tenant.

    Assigning a role at the same time also requires team.manageRoles.
    """
    if data.role_id is not None:
        permission_engine.require(current_user, context, "team", "manageRoles")

    membership, user = await tenant_service.add_member(
        db,
        context,
        email=data.email,
        role_id=data.role_id,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
        invite=data.invite,
    )
    return _member_read(membership, user)


@router.patch("/{tenant_id}/members/{user_id}", response_model=MessageResponse)
async def change_member_role(
    user_id: str,
    data: MemberRoleUpdate,
    context: Annotated[TenantContext, Depends(require_permission("team", "manageRoles"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await tenant_service.change_member_role(db, context, user_id, data.role_id)
    return MessageResponse(message="Member role updated")


@router.delete("/{tenant_id}/members/{user_id}", response_model=MessageResponse)
async def remove_member(
    user_id: str,
    context: Annotated[TenantContext, Depends(require_permission("team", "remove"))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await tenant_service.remove_member(db, context, user_id)
    return MessageResponse(message="Member removed")
