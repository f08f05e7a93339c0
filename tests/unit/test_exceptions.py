"""
Unit tests for the error hierarchy and its HTTP mapping.
"""

import pytest

from engagehub.core.exceptions import (
    AlreadyLinked,
    AlreadyReplied,
    ConnectorError,
    GenerationError,
    NotAMember,
    PermissionDenied,
    TenantInactive,
    TenantNotFound,
    ValidationError,
)


@pytest.mark.unit
class TestErrorMapping:
    @pytest.mark.parametrize("error_class, kind, http_status", [
        (ValidationError, "validation_error", 400),
        (PermissionDenied, "permission_denied", 403),
        (NotAMember, "not_a_member", 403),
        (TenantNotFound, "tenant_not_found", 404),
        (TenantInactive, "tenant_inactive", 409),
        (AlreadyReplied, "already_replied", 409),
        (AlreadyLinked, "already_linked", 409),
        (GenerationError, "generation_error", 502),
    ])
    def test_kind_and_status(self, error_class, kind, http_status):
        error = error_class("nope")

        assert error.kind == kind
        assert error.http_status == http_status

    def test_not_a_member_is_a_permission_error(self):
        assert issubclass(NotAMember, PermissionDenied)

    def test_to_dict_hides_details_by_default(self):
        error = ValidationError("Bad input", details={"field": "slug"})

        assert error.to_dict() == {"kind": "validation_error", "message": "Bad input", "retryable": False}
        assert error.to_dict(include_details=True)["details"] == {"field": "slug"}

    def test_generation_error_retryable(self):
        assert GenerationError("down").to_dict()["retryable"] is True


@pytest.mark.unit
class TestConnectorError:
    def test_carries_upstream_fields(self):
        error = ConnectorError("failed", upstream_status=401, body={"error": "expired"}, platform="instagram")

        assert error.details == {"upstream_status": 401, "body": {"error": "expired"}, "platform": "instagram"}
        assert error.is_transient is False

    def test_explicit_transient_overrides_status(self):
        assert ConnectorError("x", upstream_status=503, transient=False).is_transient is False
        assert ConnectorError("x", upstream_status=400, transient=True).is_transient is True

    def test_retryable_follows_transience(self):
        assert ConnectorError("x", upstream_status=429).to_dict()["retryable"] is True
        assert ConnectorError("x", upstream_status=403).to_dict()["retryable"] is False
