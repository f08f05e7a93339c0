"""
Authentication-specific schemas.
"""

from pydantic import EmailStr, Field, field_validator

from engagehub.schemas.common import BaseSchema
from engagehub.schemas.tenant import TenantRead
from engagehub.schemas.user import UserRead, validate_password_strength


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., description="User password")


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration in seconds")


class SignupRequest(BaseSchema):
    """Create a tenant and its admin account in one step."""

    tenant_name: str = Field(..., min_length=1, max_length=255, description="Organization name")
    email: EmailStr = Field(..., description="Admin email, also the tenant contact email")
    password: str = Field(..., min_length=8, max_length=100)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class SignupResponse(BaseSchema):
    tenant: TenantRead
    user: UserRead
    token: TokenResponse
