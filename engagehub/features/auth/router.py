"""
Authentication endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.database import get_db
from engagehub.core.exceptions import AuthenticationError
from engagehub.core.logging_config import get_logger
from engagehub.features.auth.dependencies import CurrentUser
from engagehub.features.auth.schemas import (
    LoginRequest,
    SignupRequest,
    SignupResponse,
    TokenResponse,
)
from engagehub.features.auth.service import auth_service
from engagehub.features.tenancy.resolver import parse_tenant_id
from engagehub.features.tenancy.service import tenant_service
from engagehub.models.tenant import Tenant
from engagehub.models.user import MembershipStatus, TenantMembership
from engagehub.schemas.common import MessageResponse
from engagehub.schemas.tenant import TenantRead
from engagehub.schemas.user import UserRead

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    data: SignupRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SignupResponse:
    """
    Register a new tenant and its admin.

    Seeds the tenant's system roles; the admin joins as Manager.
    """
    tenant, user = await tenant_service.signup(
        db,
        tenant_name=data.tenant_name,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )

    return SignupResponse(
        tenant=TenantRead.model_validate(tenant),
        user=UserRead.model_validate(user),
        token=auth_service.generate_token(user),
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    OAuth2 compatible token login.

    Uses OAuth2PasswordRequestForm (username/password from form data).
    We treat 'username' as email.
    """
    user = await auth_service.authenticate_user(
        db,
        email=form_data.username,  # OAuth2 standard uses 'username'
        password=form_data.password,
    )
    if not user:
        raise AuthenticationError("Incorrect email or password")

    return auth_service.generate_token(user)


@router.post("/login/json", response_model=TokenResponse)
async def login_json(
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """Login with JSON body (alternative to form data)."""
    user = await auth_service.authenticate_user(
        db,
        email=login_data.email,
        password=login_data.password,
    )
    if not user:
        raise AuthenticationError("Incorrect email or password")

    return auth_service.generate_token(user)


@router.get("/me", response_model=UserRead)
async def get_current_user_info(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)


@router.get("/me/tenants", response_model=list[TenantRead])
async def get_my_tenants(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[Tenant]:
    """Tenants where the caller holds an active membership."""
    result = await db.execute(
        select(Tenant)
        .join(TenantMembership, TenantMembership.tenant_id == Tenant.id)
        .where(
            TenantMembership.user_id == current_user.id,
            TenantMembership.status == MembershipStatus.ACTIVE.value,
        )
        .order_by(Tenant.name.asc())
    )
    return list(result.scalars().all())


@router.get("/me/invitations", response_model=list[TenantRead])
async def get_my_invitations(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[Tenant]:
    """Tenants where the caller has a pending membership."""
    return await tenant_service.list_invitations(db, current_user.id)


@router.post("/me/invitations/{tenant_id}/accept", response_model=MessageResponse)
async def accept_invitation(
    tenant_id: str,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await tenant_service.respond_to_invitation(db, current_user.id, parse_tenant_id(tenant_id), accept=True)
    return MessageResponse(message="Invitation accepted")


@router.post("/me/invitations/{tenant_id}/decline", response_model=MessageResponse)
async def decline_invitation(
    tenant_id: str,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await tenant_service.respond_to_invitation(db, current_user.id, parse_tenant_id(tenant_id), accept=False)
    return MessageResponse(message="Invitation declined")


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: CurrentUser) -> MessageResponse:
    """
    Logout endpoint.

    In JWT-based auth, logout is handled client-side by deleting the token.
    """
    logger.info("user_logged_out", user_id=current_user.id)
    return MessageResponse(message="Successfully logged out")
