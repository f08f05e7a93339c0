"""
System roles and their default permission matrices.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.logging_config import get_logger
from engagehub.features.tenancy.permissions import RESOURCES
from engagehub.models.role import Role

logger = get_logger(__name__)

# (name, level), most senior first
SYSTEM_ROLES: tuple[tuple[str, int], ...] = (
    ("Manager", 10),
    ("Leader", 8),
    ("Senior Agent", 6),
    ("Agent", 4),
    ("Associate", 2),
    ("Intern", 1),
)

# Minimum role level granting each action
MIN_LEVELS: dict[str, dict[str, int]] = {
    "comments": {"view": 2, "reply": 4, "delete": 8, "moderate": 10},
    "leads": {"view": 2, "create": 4, "update": 6, "delete": 10},
    "team": {"view": 6, "invite": 8, "remove": 10, "manageRoles": 10},
    "settings": {"view": 8, "update": 10},
    "analytics": {"view": 4},
}


def default_permissions(level: int) -> dict[str, dict[str, bool]]:
    """Permission matrix granted by default to a role of the given level."""
    return {
        resource: {action: level >= MIN_LEVELS[resource][action] for action in actions}
        for resource, actions in RESOURCES.items()
    }


async def seed_system_roles(db: AsyncSession, tenant_id: str) -> list[Role]:
    """
    Create the system roles for a tenant.

    Roles that already exist (by name) are left untouched, so calling this
    twice is harmless. Flushes but does not commit.
    """
    result = await db.execute(
        select(Role.name).where(Role.tenant_id == tenant_id)
    )
    existing = set(result.scalars().all())

    created = []
    for name, level in SYSTEM_ROLES:
        if name in existing:
            continue
        role = Role(
            tenant_id=tenant_id,
            name=name,
            level=level,
            permissions=default_permissions(level),
            is_system_role=True,
            is_active=True,
        )
        db.add(role)
        created.append(role)

    await db.flush()
    logger.info("system_roles_seeded", tenant_id=tenant_id, created=len(created))
    return created
