"""
Seed database with a demo tenant, an agent and a few ingested comments.
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from engagehub.core.database import db_manager
from engagehub.features.ingestion.gateway import ingestion_gateway
from engagehub.features.tenancy.resolver import MembershipGrant, TenantContext
from engagehub.features.tenancy.service import tenant_service
from engagehub.models.post import Post
from engagehub.models.role import Role
from engagehub.models.tenant import Tenant
from engagehub.models.user import MembershipStatus

DEMO_COMMENTS = [
    {"id": "ig_c_1001", "text": "Love this! How much does it cost?", "from": {"id": "u1", "username": "jane.doe"}},
    {"id": "ig_c_1002", "text": "Worst delivery ever, still waiting", "from": {"id": "u2", "username": "angry.bob"}},
    {"id": "ig_c_1003", "text": "Is this available in blue?", "from": {"id": "u3", "username": "curious.cat"}},
]


async def seed_data() -> None:
    """Create initial demo data."""
    print("Seeding database...")

    db_manager.init()
    await db_manager.create_all()

    async with db_manager.session_factory() as db:
        result = await db.execute(select(Tenant))
        if result.first():
            print("Database already contains data. Skipping seed.")
            await db_manager.close()
            return

        tenant, admin = await tenant_service.signup(
            db,
            tenant_name="Acme Corporation",
            email="admin@acme.com",
            password="Admin123!",
            first_name="Ada",
            last_name="Admin",
        )
        tenant.instagram_enabled = True
        await db.commit()

        result = await db.execute(select(Role).where(Role.tenant_id == tenant.id, Role.name == "Agent"))
        agent_role = result.scalar_one()
        context = TenantContext(
            tenant=tenant,
            membership=MembershipGrant(tenant_id=tenant.id, role_id=None, status=MembershipStatus.ACTIVE, implicit=True),
        )
        _, agent = await tenant_service.add_member(
            db,
            context,
            email="agent@acme.com",
            role_id=agent_role.id,
            password="Agent123!",
            first_name="Alex",
            last_name="Agent",
        )

        db.add(Post(tenant_id=tenant.id, platform="instagram", external_id="ig_post_1"))
        await db.commit()

        for comment in DEMO_COMMENTS:
            await ingestion_gateway.ingest(
                db,
                tenant.id,
                {**comment, "type": "comment", "post_id": "ig_post_1"},
                "instagram",
            )

        print(f"Created tenant: {tenant.name} ({tenant.id})")
        print(f"Created admin: {admin.email} (password: Admin123!)")
        print(f"Created agent: {agent.email} (password: Agent123!)")
        print(f"Ingested {len(DEMO_COMMENTS)} demo comments")

    await db_manager.close()
    print("Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_data())
