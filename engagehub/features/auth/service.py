"""
Authentication business logic.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.config import settings
from engagehub.core.logging_config import get_logger
from engagehub.core.security import create_access_token, verify_password
from engagehub.features.auth.schemas import TokenResponse
from engagehub.models.base import utcnow
from engagehub.models.user import User

logger = get_logger(__name__)


class AuthService:
    """Authentication service with business logic."""

    @staticmethod
    async def authenticate_user(
        db: AsyncSession,
        email: str,
        password: str,
    ) -> User | None:
        """
        Authenticate user by email and password.

        Args:
            db: Database session
            email: User email
            password: Plain text password

        Returns:
            User object if authenticated, None otherwise
        """
        result = await db.execute(
            select(User).where(User.email == email)
        )
        user = result.scalar_one_or_none()

        if not user:
            logger.warning("login_unknown_user", email=email)
            return None

        if not verify_password(password, user.hashed_password):
            logger.warning("login_bad_password", user_id=user.id)
            return None

        if not user.is_active:
            logger.warning("login_inactive_user", user_id=user.id)
            return None

        user.last_login_at = utcnow()
        await db.commit()

        logger.info("user_authenticated", user_id=user.id)
        return user

    @staticmethod
    def generate_token(user: User) -> TokenResponse:
        """Issue an access token for a user."""
        access_token = create_access_token(
            user_id=user.id,
            user_type=getattr(user.user_type, "value", user.user_type),
        )
        return TokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.access_token_expire_minutes * 60,
        )


# Singleton instance
auth_service = AuthService()
