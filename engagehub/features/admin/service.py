"""
Platform administration across tenants.

Only super admins reach this service. Tenant and user deletion are hard
deletes; rows that reference the deleted records are removed or detached
explicitly, in dependency order, so the result does not depend on the
database enforcing ``ON DELETE`` rules.
"""

from typing import Any

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.exceptions import ConflictError, ResourceNotFound, TenantNotFound, ValidationError
from engagehub.core.logging_config import get_logger
from engagehub.features.admin.schemas import PlatformStats
from engagehub.features.tenancy.resolver import parse_tenant_id
from engagehub.models.comment import Comment, CommentStatus
from engagehub.models.inbox import InboxItem
from engagehub.models.lead import Lead, LeadStatus
from engagehub.models.post import Post
from engagehub.models.role import Role
from engagehub.models.tenant import Tenant, TenantStatus
from engagehub.models.user import TenantMembership, User

logger = get_logger(__name__)

TOP_TENANTS = 10

USER_UPDATE_FIELDS = ("email", "first_name", "last_name", "user_type", "is_active")


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


async def _count(db: AsyncSession, model: type, *criteria) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*criteria)) or 0


async def _grouped(db: AsyncSession, column) -> dict[str, int]:
    result = await db.execute(select(column, func.count()).group_by(column))
    return {str(_value(key)): count for key, count in result.all()}


class PlatformAdminService:
    """Cross-tenant statistics, tenant deletion and user management."""

    @staticmethod
    async def stats(db: AsyncSession) -> PlatformStats:
        comment_counts = (
            select(Comment.tenant_id, func.count().label("n")).group_by(Comment.tenant_id).subquery()
        )
        lead_counts = (
            select(Lead.tenant_id, func.count().label("n")).group_by(Lead.tenant_id).subquery()
        )
        comment_count = func.coalesce(comment_counts.c.n, 0).label("comment_count")
        lead_count = func.coalesce(lead_counts.c.n, 0).label("lead_count")
        top = await db.execute(
            select(Tenant.id, Tenant.name, Tenant.slug, Tenant.status, comment_count, lead_count)
            .outerjoin(comment_counts, comment_counts.c.tenant_id == Tenant.id)
            .outerjoin(lead_counts, lead_counts.c.tenant_id == Tenant.id)
            .order_by(desc("comment_count"), Tenant.created_at.asc())
            .limit(TOP_TENANTS)
        )

        return PlatformStats(
            tenants={
                "total": await _count(db, Tenant),
                "active": await _count(db, Tenant, Tenant.status == TenantStatus.ACTIVE.value),
            },
            users={
                "total": await _count(db, User),
                "active": await _count(db, User, User.is_active.is_(True)),
            },
            comments={
                "total": await _count(db, Comment),
                "new": await _count(db, Comment, Comment.status == CommentStatus.NEW.value),
                "replied": await _count(db, Comment, Comment.is_replied.is_(True)),
                "by_sentiment": await _grouped(db, Comment.sentiment),
                "by_platform": await _grouped(db, Comment.platform),
            },
            leads={
                "total": await _count(db, Lead),
                "new": await _count(db, Lead, Lead.status == LeadStatus.NEW.value),
                "qualified": await _count(db, Lead, Lead.status == LeadStatus.QUALIFIED.value),
            },
            top_tenants=[dict(row._mapping) for row in top.all()],
        )

    @staticmethod
    async def delete_tenant(db: AsyncSession, tenant_id: str, actor_id: str) -> dict[str, int]:
        """
        Delete a tenant and everything it owns. Users are kept; only their
        memberships in this tenant go.

        Raises:
            ValidationError: Malformed tenant id
            TenantNotFound: No such tenant
        """
        tenant_id = parse_tenant_id(tenant_id)
        tenant = await db.get(Tenant, tenant_id)
        if tenant is None:
            raise TenantNotFound("Tenant not found", details={"tenant_id": tenant_id})
        slug = tenant.slug

        # Comments and leads point at each other; detach before deleting either
        await db.execute(
            update(Comment)
            .where(Comment.tenant_id == tenant_id)
            .values(lead_id=None)
            .execution_options(synchronize_session=False)
        )

        deleted: dict[str, int] = {}
        for name, model in (
            ("leads", Lead),
            ("comments", Comment),
            ("inbox_items", InboxItem),
            ("posts", Post),
            ("memberships", TenantMembership),
            ("roles", Role),
            ("tenants", Tenant),
        ):
            key = model.id if model is Tenant else model.tenant_id
            result = await db.execute(
                delete(model).where(key == tenant_id).execution_options(synchronize_session=False)
            )
            deleted[name] = result.rowcount
        await db.commit()
        # Bulk deletes leave loaded instances behind; drop them from the identity map
        db.expunge_all()

        logger.warning("tenant_deleted", tenant_id=tenant_id, slug=slug, by=actor_id, **deleted)
        return deleted

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise ResourceNotFound("User not found", details={"user_id": user_id})
        return user

    @staticmethod
    def users_query(
        tenant_id: str | None = None,
        user_type: str | None = None,
        is_active: bool | None = None,
    ):
        query = select(User)
        if tenant_id:
            query = query.where(
                User.id.in_(select(TenantMembership.user_id).where(TenantMembership.tenant_id == tenant_id))
            )
        if user_type:
            query = query.where(User.user_type == user_type)
        if is_active is not None:
            query = query.where(User.is_active.is_(is_active))
        return query.order_by(User.created_at.desc())

    @staticmethod
    async def update_user(db: AsyncSession, actor: User, user_id: str, changes: dict[str, Any]) -> User:
        """
        Update any user.

        Raises:
            ResourceNotFound: No such user
            ValidationError: Super admin demoting or deactivating themselves
            ConflictError: Email already used by another account
        """
        user = await PlatformAdminService.get_user(db, user_id)
        actor_id = actor.id

        if user.id == actor_id:
            demoted = changes.get("user_type") not in (None, _value(user.user_type))
            if demoted or changes.get("is_active") is False:
                raise ValidationError("Super admins cannot demote or deactivate themselves")

        conflict = ConflictError("User with this email already exists", details={"email": changes.get("email")})
        if changes.get("email") and changes["email"] != user.email:
            taken = await db.scalar(select(User.id).where(User.email == changes["email"]))
            if taken is not None:
                raise conflict

        for field in USER_UPDATE_FIELDS:
            if changes.get(field) is not None:
                setattr(user, field, _value(changes[field]))

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise conflict from e

        logger.info(
            "user_updated_by_admin",
            user_id=user_id,
            by=actor_id,
            fields=sorted(k for k in changes if k in USER_UPDATE_FIELDS and changes[k] is not None),
        )
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, actor: User, user_id: str) -> None:
        """
        Delete a user. Comments, leads and inbox items assigned to them are
        unassigned; their memberships are removed.

        Raises:
            ResourceNotFound: No such user
            ValidationError: Super admin deleting themselves
        """
        user = await PlatformAdminService.get_user(db, user_id)
        if user.id == actor.id:
            raise ValidationError("Super admins cannot delete themselves")
        email = user.email

        for model in (Comment, Lead, InboxItem):
            await db.execute(
                update(model)
                .where(model.assigned_to_id == user_id)
                .values(assigned_to_id=None)
                .execution_options(synchronize_session=False)
            )
        await db.execute(
            delete(TenantMembership)
            .where(TenantMembership.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        await db.delete(user)
        await db.commit()

        logger.warning("user_deleted", user_id=user_id, email=email, by=actor.id)


platform_admin_service = PlatformAdminService()
