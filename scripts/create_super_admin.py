"""
Create a platform super admin.

Usage:
    python scripts/create_super_admin.py [email] [password] [first_name] [last_name]
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from engagehub.core.database import db_manager
from engagehub.core.security import hash_password
from engagehub.models.user import User, UserType


async def create_super_admin(email: str, password: str, first_name: str, last_name: str) -> None:
    db_manager.init()
    await db_manager.create_all()

    async with db_manager.session_factory() as db:
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()

        if existing is not None:
            if existing.user_type == UserType.SUPER_ADMIN.value:
                print(f"Super admin already exists: {email}")
            else:
                print(f"A non-admin user already uses {email}; pick another email.")
            await db_manager.close()
            return

        db.add(User(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            user_type=UserType.SUPER_ADMIN.value,
            is_active=True,
        ))
        await db.commit()

    await db_manager.close()
    print(f"Super admin created: {email}")


if __name__ == "__main__":
    args = sys.argv[1:] + [None] * 4
    asyncio.run(create_super_admin(
        email=args[0] or "admin@engagehub.local",
        password=args[1] or "Admin123456",
        first_name=args[2] or "Super",
        last_name=args[3] or "Admin",
    ))
