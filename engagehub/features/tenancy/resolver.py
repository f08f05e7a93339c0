"""
Tenant context resolution.

Turns a claimed tenant identifier plus an authenticated principal into a
``TenantContext``: the tenant, the principal's membership grant and its
role. The context is resolved once per request and passed down; nothing
downstream re-reads membership.
"""

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.exceptions import (
    NotAMember,
    TenantInactive,
    TenantNotFound,
    ValidationError,
)
from engagehub.core.logging_config import get_logger
from engagehub.models.role import Role
from engagehub.models.tenant import Tenant
from engagehub.models.user import MembershipStatus, TenantMembership, User, UserType

logger = get_logger(__name__)


@dataclass(frozen=True)
class MembershipGrant:
    """
    Membership as seen by the permission engine.

    ``implicit`` grants are synthesized for super admins, who do not need
    a stored membership.
    """

    tenant_id: str
    role_id: str | None
    status: MembershipStatus
    implicit: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE


@dataclass(frozen=True)
class TenantContext:
    tenant: Tenant
    membership: MembershipGrant
    role: Role | None = None

    @property
    def tenant_id(self) -> str:
        return self.tenant.id


def parse_tenant_id(claimed: str | None) -> str:
    """Validate a tenant identifier and return it in canonical form."""
    if not claimed:
        raise ValidationError("Tenant ID is required")
    try:
        return str(uuid.UUID(str(claimed)))
    except ValueError:
        raise ValidationError("Invalid tenant ID format", details={"tenant_id": claimed})


class TenantContextResolver:
    """Resolves and validates tenant access for a principal."""

    async def load_tenant(self, db: AsyncSession, claimed_tenant_id: str | None) -> Tenant:
        """Load an active tenant by id, without any membership check."""
        tenant_id = parse_tenant_id(claimed_tenant_id)

        tenant = await db.get(Tenant, tenant_id)
        if tenant is None:
            raise TenantNotFound("Tenant not found", details={"tenant_id": tenant_id})

        if not tenant.is_active:
            raise TenantInactive(
                "Tenant is not active",
                details={"tenant_id": tenant_id, "status": tenant.status},
            )
        return tenant

    async def resolve(
        self,
        db: AsyncSession,
        principal: User,
        claimed_tenant_id: str | None,
    ) -> TenantContext:
        """
        Resolve the tenant context for a principal.

        Raises:
            ValidationError: Identifier missing or malformed
            TenantNotFound: No such tenant
            TenantInactive: Tenant is suspended or inactive
            NotAMember: Principal has no active membership in the tenant
        """
        tenant = await self.load_tenant(db, claimed_tenant_id)

        if principal.user_type == UserType.SUPER_ADMIN:
            return TenantContext(
                tenant=tenant,
                membership=MembershipGrant(
                    tenant_id=tenant.id,
                    role_id=None,
                    status=MembershipStatus.ACTIVE,
                    implicit=True,
                ),
            )

        result = await db.execute(
            select(TenantMembership).where(
                TenantMembership.user_id == principal.id,
                TenantMembership.tenant_id == tenant.id,
                TenantMembership.status == MembershipStatus.ACTIVE,
            )
        )
        membership = result.scalar_one_or_none()

        if membership is None:
            logger.warning(
                "tenant_access_denied",
                user_id=principal.id,
                tenant_id=tenant.id,
            )
            raise NotAMember("User is not a member of this tenant")

        role = None
        if membership.role_id:
            role = await db.get(Role, membership.role_id)

        return TenantContext(
            tenant=tenant,
            membership=MembershipGrant(
                tenant_id=membership.tenant_id,
                role_id=membership.role_id,
                status=MembershipStatus(membership.status),
            ),
            role=role,
        )


tenant_resolver = TenantContextResolver()
