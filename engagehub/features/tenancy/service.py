"""
Tenant, membership and role management.
"""

import re
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.exceptions import (
    ConflictError,
    DuplicateTenant,
    EngageHubError,
    ResourceNotFound,
    ValidationError,
)
from engagehub.core.logging_config import get_logger
from engagehub.core.security import hash_password
from engagehub.features.tenancy.resolver import TenantContext
from engagehub.features.tenancy.roles import seed_system_roles
from engagehub.models.base import utcnow
from engagehub.models.role import Role
from engagehub.models.tenant import Tenant, TenantStatus
from engagehub.models.user import MembershipStatus, TenantMembership, User, UserType

logger = get_logger(__name__)

MANAGER_ROLE = "Manager"

TENANT_SETTINGS_FIELDS = (
    "name", "phone", "instagram_enabled", "facebook_enabled", "auto_reply_enabled",
    "lead_generation_enabled", "ai_provider", "ai_api_key", "ai_model", "ai_temperature",
    "instagram_access_token", "instagram_page_id", "facebook_access_token", "facebook_page_id",
)


def slugify(name: str) -> str:
    """'Acme Corp!' -> 'acme-corp'"""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


async def _commit_unique(db: AsyncSession, error: EngageHubError) -> None:
    """Commit; a unique-constraint violation from a concurrent writer becomes ``error``."""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("unique_write_conflict", kind=error.kind, error=str(e.orig))
        raise error from e


class TenantService:
    """Tenant lifecycle and team management."""

    @staticmethod
    async def signup(
        db: AsyncSession,
        tenant_name: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> tuple[Tenant, User]:
        """
        Create a tenant together with its admin user.

        Seeds the system roles and gives the admin an active membership
        with the Manager role.

        Raises:
            ConflictError: Email already registered
            DuplicateTenant: Slug or tenant email already taken
            ValidationError: Tenant name produces an empty slug
        """
        slug = slugify(tenant_name)
        if not slug:
            raise ValidationError("Tenant name must contain letters or digits")

        if await TenantService._email_registered(db, email):
            raise ConflictError("User with this email already exists")

        duplicate = DuplicateTenant("Tenant with this name or email already exists", details={"slug": slug})
        if await TenantService._tenant_taken(db, slug, email):
            raise duplicate

        try:
            tenant, user = await TenantService._create_tenant_with_admin(
                db, tenant_name, slug, email, password, first_name, last_name,
            )
        except IntegrityError as e:
            await db.rollback()
            logger.warning("signup_conflict", slug=slug, error=str(e.orig))
            raise duplicate from e

        logger.info("tenant_signed_up", tenant_id=tenant.id, slug=slug, user_id=user.id)
        return tenant, user

    @staticmethod
    async def _email_registered(db: AsyncSession, email: str) -> bool:
        result = await db.execute(select(User.id).where(User.email == email))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def _tenant_taken(db: AsyncSession, slug: str, email: str) -> bool:
        result = await db.execute(
            select(Tenant.id).where(or_(Tenant.slug == slug, Tenant.email == email))
        )
        return result.first() is not None

    @staticmethod
    async def _create_tenant_with_admin(
        db: AsyncSession,
        tenant_name: str,
        slug: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> tuple[Tenant, User]:
        tenant = Tenant(name=tenant_name, slug=slug, email=email, status=TenantStatus.ACTIVE.value)
        db.add(tenant)
        await db.flush()

        roles = await seed_system_roles(db, tenant.id)
        manager = next(role for role in roles if role.name == MANAGER_ROLE)

        user = User(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            user_type=UserType.TENANT_ADMIN.value,
            is_active=True,
        )
        db.add(user)
        await db.flush()

        db.add(TenantMembership(
            user_id=user.id,
            tenant_id=tenant.id,
            role_id=manager.id,
            status=MembershipStatus.ACTIVE.value,
            joined_at=utcnow(),
        ))
        await db.commit()
        return tenant, user

    @staticmethod
    async def update_settings(
        db: AsyncSession,
        context: TenantContext,
        changes: dict[str, Any],
    ) -> Tenant:
        tenant = context.tenant
        for field in TENANT_SETTINGS_FIELDS:
            if field in changes:
                setattr(tenant, field, _value(changes[field]))
        await db.commit()

        logger.info(
            "tenant_settings_updated",
            tenant_id=tenant.id,
            fields=sorted(k for k in changes if k in TENANT_SETTINGS_FIELDS),
        )
        return tenant

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    @staticmethod
    async def get_role(db: AsyncSession, tenant_id: str, role_id: str) -> Role:
        result = await db.execute(
            select(Role).where(Role.id == role_id, Role.tenant_id == tenant_id)
        )
        role = result.scalar_one_or_none()
        if role is None:
            raise ResourceNotFound("Role not found", details={"role_id": role_id})
        return role

    @staticmethod
    async def list_roles(db: AsyncSession, tenant_id: str) -> list[Role]:
        result = await db.execute(
            select(Role)
            .where(Role.tenant_id == tenant_id, Role.is_active.is_(True))
            .order_by(Role.level.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_role(
        db: AsyncSession,
        context: TenantContext,
        name: str,
        level: int,
        permissions: dict[str, Any],
    ) -> Role:
        duplicate = ConflictError("Role with this name already exists", details={"name": name})
        if await TenantService._role_name_taken(db, context.tenant_id, name):
            raise duplicate

        role = Role(
            tenant_id=context.tenant_id,
            name=name,
            level=level,
            permissions=permissions,
            is_system_role=False,
            is_active=True,
        )
        db.add(role)
        await _commit_unique(db, duplicate)

        logger.info("role_created", tenant_id=context.tenant_id, role_id=role.id, name=name)
        return role

    @staticmethod
    async def _role_name_taken(db: AsyncSession, tenant_id: str, name: str) -> bool:
        result = await db.execute(
            select(Role.id).where(Role.tenant_id == tenant_id, Role.name == name)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def update_role(
        db: AsyncSession,
        context: TenantContext,
        role_id: str,
        changes: dict[str, Any],
    ) -> Role:
        """
        Update a role.

        System roles accept permission changes (merged per resource) and
        activation changes only; renaming or releveling them is rejected.
        """
        role = await TenantService.get_role(db, context.tenant_id, role_id)

        if role.is_system_role:
            renamed = "name" in changes and changes["name"] != role.name
            releveled = "level" in changes and changes["level"] != role.level
            if renamed or releveled:
                raise ValidationError("System roles cannot be renamed or releveled")
            if changes.get("permissions") is not None:
                role.permissions = {**(role.permissions or {}), **changes["permissions"]}
        else:
            if changes.get("name") and changes["name"] != role.name:
                if await TenantService._role_name_taken(db, context.tenant_id, changes["name"]):
                    raise ConflictError("Role with this name already exists", details={"name": changes["name"]})
                role.name = changes["name"]
            if changes.get("level") is not None:
                role.level = changes["level"]
            if changes.get("permissions") is not None:
                role.permissions = changes["permissions"]

        if changes.get("is_active") is not None:
            role.is_active = changes["is_active"]

        await _commit_unique(
            db, ConflictError("Role with this name already exists", details={"name": changes.get("name")}),
        )
        logger.info("role_updated", tenant_id=context.tenant_id, role_id=role.id)
        return role

    @staticmethod
    async def delete_role(db: AsyncSession, context: TenantContext, role_id: str) -> Role:
        """Deactivate a custom role. System roles cannot be deleted."""
        role = await TenantService.get_role(db, context.tenant_id, role_id)
        if role.is_system_role:
            raise ValidationError("Cannot delete system role")

        role.is_active = False
        await db.commit()
        logger.info("role_deleted", tenant_id=context.tenant_id, role_id=role.id)
        return role

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------

    @staticmethod
    async def list_members(db: AsyncSession, tenant_id: str) -> list[tuple[TenantMembership, User]]:
        result = await db.execute(
            select(TenantMembership, User)
            .join(User, User.id == TenantMembership.user_id)
            .where(
                TenantMembership.tenant_id == tenant_id,
                TenantMembership.status == MembershipStatus.ACTIVE.value,
            )
            .order_by(TenantMembership.joined_at.asc())
        )
        return [(membership, user) for membership, user in result.all()]

    @staticmethod
    async def add_member(
        db: AsyncSession,
        context: TenantContext,
        email: str,
        role_id: str | None,
        password: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        invite: bool = False,
    ) -> tuple[TenantMembership, User]:
        """
        Add a user to the tenant, creating an agent account if needed.

        With ``invite`` the user must already have an account; the
        membership is created pending and grants nothing until the user
        accepts it.

        Raises:
            ValidationError: Role not in this tenant, or password missing for a new user
            ResourceNotFound: Invited email has no account
            ConflictError: User is already an active member or has a pending invitation
        """
        tenant_id = context.tenant_id
        if role_id is not None:
            role = await db.get(Role, role_id)
            if role is None or role.tenant_id != tenant_id:
                raise ValidationError(
                    "Role does not belong to this tenant",
                    details={"role_id": role_id},
                )

        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        conflict = ConflictError("User is already a member of this tenant")

        try:
            if user is None:
                if invite:
                    raise ResourceNotFound("No account with this email", details={"email": email})
                if not password:
                    raise ValidationError("Password is required for new users")
                user = User(
                    email=email,
                    hashed_password=hash_password(password),
                    first_name=first_name or "",
                    last_name=last_name or "",
                    user_type=UserType.AGENT.value,
                    is_active=True,
                )
                db.add(user)
                await db.flush()

            user_id = user.id
            membership = await TenantService._find_membership(db, tenant_id, user_id)

            if membership is not None and membership.is_active:
                raise conflict
            if invite and membership is not None and membership.status == MembershipStatus.PENDING.value:
                raise ConflictError("User already has a pending invitation")

            if membership is None:
                membership = TenantMembership(user_id=user_id, tenant_id=tenant_id)
                db.add(membership)

            membership.role_id = role_id
            membership.status = (MembershipStatus.PENDING if invite else MembershipStatus.ACTIVE).value
            membership.joined_at = utcnow()
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning("member_add_conflict", tenant_id=tenant_id, error=str(e.orig))
            raise conflict from e

        logger.info(
            "member_invited" if invite else "member_added",
            tenant_id=tenant_id,
            user_id=user_id,
            role_id=role_id,
        )
        return membership, user

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    @staticmethod
    async def list_invitations(db: AsyncSession, user_id: str) -> list[Tenant]:
        """Tenants that invited the user and are waiting for an answer."""
        result = await db.execute(
            select(Tenant)
            .join(TenantMembership, TenantMembership.tenant_id == Tenant.id)
            .where(
                TenantMembership.user_id == user_id,
                TenantMembership.status == MembershipStatus.PENDING.value,
            )
            .order_by(Tenant.name.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def respond_to_invitation(
        db: AsyncSession,
        user_id: str,
        tenant_id: str,
        accept: bool,
    ) -> TenantMembership:
        """
        Accept or decline a pending membership.

        Raises:
            ResourceNotFound: No pending invitation from this tenant
        """
        membership = await TenantService._find_membership(db, tenant_id, user_id)
        if membership is None or membership.status != MembershipStatus.PENDING.value:
            raise ResourceNotFound("Invitation not found", details={"tenant_id": tenant_id})

        if accept:
            membership.status = MembershipStatus.ACTIVE.value
            membership.joined_at = utcnow()
        else:
            membership.status = MembershipStatus.INACTIVE.value
        await db.commit()

        logger.info(
            "invitation_accepted" if accept else "invitation_declined",
            tenant_id=tenant_id,
            user_id=user_id,
        )
        return membership

    @staticmethod
    async def change_member_role(
        db: AsyncSession,
        context: TenantContext,
        user_id: str,
        role_id: str | None,
    ) -> TenantMembership:
        membership = await TenantService._get_membership(db, context.tenant_id, user_id)
        if role_id is not None:
            role = await db.get(Role, role_id)
            if role is None or role.tenant_id != context.tenant_id:
                raise ValidationError("Role does not belong to this tenant", details={"role_id": role_id})

        membership.role_id = role_id
        await db.commit()
        return membership

    @staticmethod
    async def remove_member(db: AsyncSession, context: TenantContext, user_id: str) -> TenantMembership:
        membership = await TenantService._get_membership(db, context.tenant_id, user_id)
        membership.status = MembershipStatus.INACTIVE.value
        await db.commit()

        logger.info("member_removed", tenant_id=context.tenant_id, user_id=user_id)
        return membership

    @staticmethod
    async def _find_membership(db: AsyncSession, tenant_id: str, user_id: str) -> TenantMembership | None:
        result = await db.execute(
            select(TenantMembership).where(
                TenantMembership.user_id == user_id,
                TenantMembership.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _get_membership(db: AsyncSession, tenant_id: str, user_id: str) -> TenantMembership:
        membership = await TenantService._find_membership(db, tenant_id, user_id)
        if membership is None:
            raise ResourceNotFound("Member not found", details={"user_id": user_id})
        return membership


tenant_service = TenantService()
