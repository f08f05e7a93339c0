"""
Role-Based Access Control (RBAC) model.

A role is a named, leveled permission matrix owned by exactly one tenant.
"""

from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import BaseModel


class Role(BaseModel):
    """
    Tenant-scoped role.

    ``permissions`` is stored as ``{resource: {action: bool}}``; read it
    through ``PermissionMatrix`` so missing entries evaluate to False.

    System roles are seeded when the tenant is created. Their
    permissions may be edited, but they cannot be renamed or deleted.
    """

    __tablename__ = "roles"

    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning tenant"
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Role name, unique within the tenant"
    )

    level: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Seniority level (>= 0)"
    )

    permissions: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="resource -> action -> bool"
    )

    is_system_role: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Seeded role (cannot be renamed or deleted)"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_role_tenant_name"),
    )

    def __repr__(self) -> str:
        return f"<Role(name={self.name}, tenant_id={self.tenant_id})>"
