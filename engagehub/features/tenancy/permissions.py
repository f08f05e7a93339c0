"""
Permission engine.

A principal is reduced to a capability before any rule is applied:

- ``SuperAdmin``: every action on every tenant
- ``TenantAdmin``: every action inside tenants where it holds an active membership
- ``Agent``: whatever its role's permission matrix allows

All evaluation happens in ``PermissionEngine.check``; nothing here
touches the database.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from engagehub.core.exceptions import PermissionDenied
from engagehub.models.role import Role
from engagehub.models.user import User, UserType

if TYPE_CHECKING:
    from engagehub.features.tenancy.resolver import TenantContext

RESOURCES: dict[str, tuple[str, ...]] = {
    "comments": ("view", "reply", "delete", "moderate"),
    "leads": ("view", "create", "update", "delete"),
    "team": ("view", "invite", "remove", "manageRoles"),
    "settings": ("view", "update"),
    "analytics": ("view",),
}


class PermissionMatrix:
    """
    Read-only view over a role's ``{resource: {action: bool}}`` JSON.

    Unknown resources, unknown actions and malformed entries are denied.
    """

    def __init__(self, raw: dict[str, Any] | None):
        self._raw = raw if isinstance(raw, dict) else {}

    def allows(self, resource: str, action: str) -> bool:
        actions = self._raw.get(resource)
        if not isinstance(actions, dict):
            return False
        return actions.get(action) is True

    def as_dict(self) -> dict[str, dict[str, bool]]:
        return {
            resource: {action: self.allows(resource, action) for action in actions}
            for resource, actions in RESOURCES.items()
        }


@dataclass(frozen=True)
class SuperAdmin:
    user_id: str


@dataclass(frozen=True)
class TenantAdmin:
    user_id: str
    tenant_id: str


@dataclass(frozen=True)
class Agent:
    user_id: str
    tenant_id: str
    role_id: str | None


Capability = Union[SuperAdmin, TenantAdmin, Agent]


def capability_for(principal: User, context: "TenantContext") -> Capability | None:
    """Reduce a principal to its capability inside the resolved tenant."""
    if principal.user_type == UserType.SUPER_ADMIN:
        return SuperAdmin(user_id=principal.id)

    membership = context.membership
    if membership is None or not membership.is_active:
        return None

    if principal.user_type == UserType.TENANT_ADMIN:
        return TenantAdmin(user_id=principal.id, tenant_id=membership.tenant_id)

    return Agent(user_id=principal.id, tenant_id=membership.tenant_id, role_id=membership.role_id)


class PermissionEngine:
    """Evaluates (resource, action) against a resolved tenant context."""

    def check(
        self,
        principal: User,
        context: "TenantContext",
        resource: str,
        action: str,
    ) -> bool:
        capability = capability_for(principal, context)
        tenant_id = context.tenant.id

        if isinstance(capability, SuperAdmin):
            return True

        if isinstance(capability, TenantAdmin):
            return capability.tenant_id == tenant_id

        if isinstance(capability, Agent):
            if capability.tenant_id != tenant_id:
                return False
            return self._role_allows(context.role, capability, tenant_id, resource, action)

        return False

    def require(
        self,
        principal: User,
        context: "TenantContext",
        resource: str,
        action: str,
    ) -> None:
        """Raise ``PermissionDenied`` unless the action is allowed."""
        if not self.check(principal, context, resource, action):
            raise PermissionDenied(
                f"Permission required: {resource}.{action}",
                details={"resource": resource, "action": action},
            )

    @staticmethod
    def _role_allows(
        role: Role | None,
        capability: Agent,
        tenant_id: str,
        resource: str,
        action: str,
    ) -> bool:
        if role is None or capability.role_id is None:
            return False
        if role.id != capability.role_id or role.tenant_id != tenant_id:
            return False
        if not role.is_active:
            return False
        return PermissionMatrix(role.permissions).allows(resource, action)


permission_engine = PermissionEngine()
