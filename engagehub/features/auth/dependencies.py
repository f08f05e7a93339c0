"""
Authentication dependencies for dependency injection.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.context import set_request_context
from engagehub.core.database import get_db
from engagehub.core.exceptions import AuthenticationError, PermissionDenied
from engagehub.core.logging_config import get_logger
from engagehub.core.security import decode_token
from engagehub.models.user import User

logger = get_logger(__name__)

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Get the authenticated principal from a bearer JWT.

    The user is always re-read from the database, so deactivation and
    user type changes apply to tokens that were already issued.
    """
    if not credentials:
        raise AuthenticationError("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type. Use access token.")

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    user = await db.get(User, user_id)
    if not user:
        logger.warning("token_user_not_found", user_id=user_id)
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    request.state.user_id = user.id
    set_request_context(user_id=user.id)

    return user


async def get_current_super_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Require super admin privileges."""
    if not current_user.is_super_admin:
        raise PermissionDenied("Super admin access required")
    return current_user


# Type aliases for cleaner code
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentSuperAdmin = Annotated[User, Depends(get_current_super_admin)]
