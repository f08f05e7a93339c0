"""
Pydantic schemas for User, memberships and roles.
"""

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, field_validator

from engagehub.models.user import MembershipStatus, UserType
from engagehub.schemas.common import BaseSchema


def validate_password_strength(v: str) -> str:
    """
    Validate password strength.

    Requirements:
    - At least 8 characters
    - Contains uppercase and lowercase
    - Contains at least one digit
    """
    if not any(char.isupper() for char in v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(char.islower() for char in v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(char.isdigit() for char in v):
        raise ValueError("Password must contain at least one digit")
    return v


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: str
    email: EmailStr
    first_name: str
    last_name: str
    user_type: UserType
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


class MemberCreate(BaseSchema):
    """
    Add a user to a tenant. Creates an agent account when the email is new.

    With ``invite`` the email must belong to an existing account, which gets a
    pending membership to accept.
    """

    email: EmailStr
    role_id: str | None = None
    password: str | None = Field(None, min_length=8, max_length=100)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    invite: bool = False

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        return validate_password_strength(v) if v is not None else v


class MemberRoleUpdate(BaseSchema):
    role_id: str | None = None


class MemberRead(BaseSchema):
    user: UserRead
    role_id: str | None = None
    status: MembershipStatus
    joined_at: datetime


class RoleBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    level: int = Field(..., ge=0)
    permissions: dict[str, dict[str, bool]] = Field(default_factory=dict)


class RoleCreate(RoleBase):
    pass


class RoleUpdate(BaseSchema):
    name: str | None = Field(None, min_length=1, max_length=100)
    level: int | None = Field(None, ge=0)
    permissions: dict[str, dict[str, bool]] | None = None
    is_active: bool | None = None


class RoleRead(RoleBase):
    id: str
    tenant_id: str
    permissions: dict[str, Any]
    is_system_role: bool
    is_active: bool
    created_at: datetime
