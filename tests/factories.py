"""
Factory pattern for creating test data.

Provides easy-to-use functions for creating test objects
with sensible defaults and optional overrides.
"""

from typing import Any

from faker import Faker
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.security import create_access_token, hash_password
from engagehub.features.engagement.sentiment import classify
from engagehub.features.tenancy.roles import seed_system_roles
from engagehub.models import Comment, Lead, Role, Tenant, TenantMembership, User
from engagehub.models.base import utcnow
from engagehub.models.comment import CommentStatus
from engagehub.models.tenant import TenantStatus
from engagehub.models.user import MembershipStatus, UserType

fake = Faker()


async def role_named(db: AsyncSession, tenant: Tenant, name: str) -> Role:
    result = await db.execute(select(Role).where(Role.tenant_id == tenant.id, Role.name == name))
    return result.scalar_one()


class TenantFactory:
    """Factory for creating test tenants."""

    @staticmethod
    async def create(
        db: AsyncSession,
        with_roles: bool = True,
        **kwargs: Any,
    ) -> Tenant:
        """
        Create a test tenant, with its system roles by default.

        Usage:
            tenant = await TenantFactory.create(db, name="Custom Corp")
        """
        defaults = {
            "name": fake.company(),
            "slug": fake.unique.slug(),
            "email": fake.unique.company_email(),
            "status": TenantStatus.ACTIVE.value,
        }
        defaults.update(kwargs)

        tenant = Tenant(**defaults)
        db.add(tenant)
        await db.flush()
        if with_roles:
            await seed_system_roles(db, tenant.id)
        await db.commit()
        return tenant


class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    async def create(db: AsyncSession, **kwargs: Any) -> User:
        """
        Create a test user (an agent unless ``user_type`` says otherwise).

        Usage:
            user = await UserFactory.create(db, email="custom@test.com")
        """
        password = kwargs.pop("password", "Test123!")

        defaults = {
            "email": fake.unique.email(),
            "hashed_password": hash_password(password),
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "user_type": UserType.AGENT.value,
            "is_active": True,
        }
        defaults.update(kwargs)

        user = User(**defaults)
        db.add(user)
        await db.commit()
        return user


class MembershipFactory:
    @staticmethod
    async def create(
        db: AsyncSession,
        user: User,
        tenant: Tenant,
        role: Role | None = None,
        **kwargs: Any,
    ) -> TenantMembership:
        defaults = {
            "user_id": user.id,
            "tenant_id": tenant.id,
            "role_id": role.id if role else None,
            "status": MembershipStatus.ACTIVE.value,
            "joined_at": utcnow(),
        }
        defaults.update(kwargs)

        membership = TenantMembership(**defaults)
        db.add(membership)
        await db.commit()
        return membership


class CommentFactory:
    """Factory for creating stored comments."""

    @staticmethod
    async def create(db: AsyncSession, tenant: Tenant, **kwargs: Any) -> Comment:
        """
        Create a comment; sentiment is classified from the text unless given.

        Usage:
            comment = await CommentFactory.create(db, tenant, comment_text="Love it")
        """
        text = kwargs.pop("comment_text", fake.sentence())
        sentiment = classify(text)

        defaults = {
            "tenant_id": tenant.id,
            "platform": "instagram",
            "post_id": f"post_{fake.random_int(1, 9999)}",
            "comment_id": f"c_{fake.unique.uuid4()}",
            "comment_text": text,
            "author_id": fake.uuid4(),
            "author_username": fake.user_name(),
            "author_name": fake.name(),
            "sentiment": sentiment.label.value,
            "sentiment_score": sentiment.score,
            "status": CommentStatus.NEW.value,
            "is_replied": False,
            "is_auto_reply": False,
            "is_lead": False,
            "like_count": 0,
        }
        defaults.update(kwargs)

        comment = Comment(**defaults)
        db.add(comment)
        await db.commit()
        return comment

    @staticmethod
    async def create_batch(
        db: AsyncSession,
        tenant: Tenant,
        count: int = 5,
        **kwargs: Any,
    ) -> list[Comment]:
        """Create multiple comments at once."""
        return [await CommentFactory.create(db, tenant, **kwargs) for _ in range(count)]


class LeadFactory:
    @staticmethod
    async def create(db: AsyncSession, tenant: Tenant, **kwargs: Any) -> Lead:
        defaults = {
            "tenant_id": tenant.id,
            "source": "manual",
            "name": fake.name(),
            "status": "new",
            "priority": "medium",
            "score": 50,
            "tags": [],
            "notes": [],
        }
        defaults.update(kwargs)

        lead = Lead(**defaults)
        db.add(lead)
        await db.commit()
        return lead


def auth_headers(user: User) -> dict[str, str]:
    """Bearer headers for a user."""
    token = create_access_token(user_id=user.id, user_type=getattr(user.user_type, "value", user.user_type))
    return {"Authorization": f"Bearer {token}"}
