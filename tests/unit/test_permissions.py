"""
Unit tests for the permission engine.

Everything here is evaluated against in-memory objects; the engine never
touches the database.
"""

import pytest

from engagehub.core.exceptions import PermissionDenied
from engagehub.features.tenancy.permissions import (
    Agent,
    PermissionMatrix,
    SuperAdmin,
    TenantAdmin,
    capability_for,
    permission_engine,
)
from engagehub.features.tenancy.resolver import MembershipGrant, TenantContext
from engagehub.features.tenancy.roles import default_permissions
from engagehub.models.role import Role
from engagehub.models.tenant import Tenant
from engagehub.models.user import MembershipStatus, User, UserType

TENANT_ID = "11111111-1111-1111-1111-111111111111"
OTHER_TENANT_ID = "22222222-2222-2222-2222-222222222222"


def make_user(user_type: UserType, user_id: str = "user-1") -> User:
    return User(id=user_id, email=f"{user_id}@example.com", user_type=user_type.value, is_active=True)


def make_role(level: int = 4, tenant_id: str = TENANT_ID, **kwargs) -> Role:
    defaults = {
        "id": "role-1",
        "tenant_id": tenant_id,
        "name": "Agent",
        "level": level,
        "permissions": default_permissions(level),
        "is_active": True,
    }
    defaults.update(kwargs)
    return Role(**defaults)


def make_context(
    role: Role | None = None,
    role_id: str | None = "role-1",
    status: MembershipStatus = MembershipStatus.ACTIVE,
    membership_tenant_id: str = TENANT_ID,
) -> TenantContext:
    return TenantContext(
        tenant=Tenant(id=TENANT_ID, name="Acme", slug="acme", email="a@acme.com", status="active"),
        membership=MembershipGrant(tenant_id=membership_tenant_id, role_id=role_id, status=status),
        role=role,
    )


@pytest.mark.unit
class TestPermissionMatrix:
    def test_allows_only_true(self):
        matrix = PermissionMatrix({"comments": {"view": True, "reply": "yes", "delete": 1}})

        assert matrix.allows("comments", "view") is True
        assert matrix.allows("comments", "reply") is False
        assert matrix.allows("comments", "delete") is False

    def test_unknown_resource_or_action(self):
        matrix = PermissionMatrix({"comments": {"view": True}})

        assert matrix.allows("billing", "view") is False
        assert matrix.allows("comments", "explode") is False

    @pytest.mark.parametrize("raw", [None, [], "all", {"comments": ["view"]}])
    def test_malformed_matrix_denies(self, raw):
        assert PermissionMatrix(raw).allows("comments", "view") is False

    def test_as_dict_covers_all_resources(self):
        flat = PermissionMatrix(default_permissions(10)).as_dict()

        assert flat["team"]["manageRoles"] is True
        assert flat["analytics"]["view"] is True


@pytest.mark.unit
class TestCapability:
    def test_super_admin(self):
        capability = capability_for(make_user(UserType.SUPER_ADMIN), make_context())
        assert capability == SuperAdmin(user_id="user-1")

    def test_tenant_admin(self):
        capability = capability_for(make_user(UserType.TENANT_ADMIN), make_context())
        assert capability == TenantAdmin(user_id="user-1", tenant_id=TENANT_ID)

    def test_agent(self):
        capability = capability_for(make_user(UserType.AGENT), make_context())
        assert capability == Agent(user_id="user-1", tenant_id=TENANT_ID, role_id="role-1")

    def test_inactive_membership_has_no_capability(self):
        context = make_context(status=MembershipStatus.INACTIVE)
        assert capability_for(make_user(UserType.TENANT_ADMIN), context) is None


@pytest.mark.unit
class TestPermissionEngine:
    def test_super_admin_allowed_everything(self):
        user = make_user(UserType.SUPER_ADMIN)
        assert permission_engine.check(user, make_context(), "team", "manageRoles") is True

    def test_tenant_admin_allowed_in_own_tenant(self):
        user = make_user(UserType.TENANT_ADMIN)
        assert permission_engine.check(user, make_context(), "settings", "update") is True

    def test_tenant_admin_denied_for_other_tenant_membership(self):
        user = make_user(UserType.TENANT_ADMIN)
        context = make_context(membership_tenant_id=OTHER_TENANT_ID)
        assert permission_engine.check(user, context, "comments", "view") is False

    def test_agent_follows_role_matrix(self):
        user = make_user(UserType.AGENT)
        context = make_context(role=make_role(level=4))

        assert permission_engine.check(user, context, "comments", "view") is True
        assert permission_engine.check(user, context, "comments", "reply") is True
        assert permission_engine.check(user, context, "comments", "moderate") is False
        assert permission_engine.check(user, context, "settings", "update") is False

    def test_agent_without_role_denied(self):
        user = make_user(UserType.AGENT)
        context = make_context(role=None, role_id=None)
        assert permission_engine.check(user, context, "comments", "view") is False

    def test_agent_with_inactive_role_denied(self):
        user = make_user(UserType.AGENT)
        context = make_context(role=make_role(level=10, is_active=False))
        assert permission_engine.check(user, context, "comments", "view") is False

    def test_agent_with_foreign_role_denied(self):
        user = make_user(UserType.AGENT)
        context = make_context(role=make_role(level=10, tenant_id=OTHER_TENANT_ID))
        assert permission_engine.check(user, context, "comments", "view") is False

    def test_agent_role_id_mismatch_denied(self):
        user = make_user(UserType.AGENT)
        context = make_context(role=make_role(level=10, id="role-2"))
        assert permission_engine.check(user, context, "comments", "view") is False

    def test_require_raises(self):
        user = make_user(UserType.AGENT)
        context = make_context(role=make_role(level=1))

        with pytest.raises(PermissionDenied) as exc_info:
            permission_engine.require(user, context, "leads", "delete")

        assert exc_info.value.details == {"resource": "leads", "action": "delete"}


@pytest.mark.unit
class TestDefaultPermissions:
    def test_levels_are_monotonic(self):
        low = default_permissions(2)
        high = default_permissions(8)
        for resource, actions in low.items():
            for action, allowed in actions.items():
                if allowed:
                    assert high[resource][action] is True

    def test_intern_has_nothing(self):
        permissions = default_permissions(1)
        assert not any(allowed for actions in permissions.values() for allowed in actions.values())
