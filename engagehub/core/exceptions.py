"""
Custom exception hierarchy for the application.

Every domain error carries a stable ``kind`` and the HTTP status it maps
to, so route handlers can simply let them propagate.
"""

from typing import Any

from fastapi import status


class EngageHubError(Exception):
    """Base exception for all application exceptions."""

    kind: str = "internal_error"
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, include_details: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }
        if include_details and self.details:
            payload["details"] = self.details
        return payload


class ValidationError(EngageHubError):
    """Raised when input validation fails."""
    kind = "validation_error"
    http_status = status.HTTP_400_BAD_REQUEST


class AuthenticationError(EngageHubError):
    """Raised when authentication fails."""
    kind = "authentication_error"
    http_status = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(EngageHubError):
    """Raised when the principal lacks a permission."""
    kind = "permission_denied"
    http_status = status.HTTP_403_FORBIDDEN


class NotAMember(PermissionDenied):
    """Raised when the principal has no active membership in the tenant."""
    kind = "not_a_member"


class ResourceNotFound(EngageHubError):
    """Raised when a requested resource doesn't exist."""
    kind = "resource_not_found"
    http_status = status.HTTP_404_NOT_FOUND


class TenantNotFound(ResourceNotFound):
    kind = "tenant_not_found"


class ConflictError(EngageHubError):
    """Raised when the operation conflicts with current state."""
    kind = "conflict"
    http_status = status.HTTP_409_CONFLICT


class TenantInactive(ConflictError):
    kind = "tenant_inactive"


class AlreadyReplied(ConflictError):
    kind = "already_replied"


class AlreadyLinked(ConflictError):
    """Raised when a comment is already linked to a lead."""
    kind = "already_linked"


class DuplicateTenant(ConflictError):
    kind = "duplicate_tenant"


class UpstreamError(EngageHubError):
    """Raised when an external dependency fails. Safe to retry."""
    kind = "upstream_error"
    http_status = status.HTTP_502_BAD_GATEWAY
    retryable = True


class ConnectorError(UpstreamError):
    """
    Social platform API failure.

    Carries the upstream HTTP status and body. Auth/permission failures
    (401/403) and other client errors are fatal; network errors, 429 and
    5xx are transient. ``transient`` overrides the classification for
    failures raised before any request is made (e.g. missing credentials).
    """

    kind = "connector_error"

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        body: Any = None,
        platform: str | None = None,
        transient: bool | None = None,
    ):
        super().__init__(
            message,
            details={"upstream_status": upstream_status, "body": body, "platform": platform},
        )
        self.upstream_status = upstream_status
        self.body = body
        self.platform = platform
        self._transient = transient

    @property
    def is_transient(self) -> bool:
        if self._transient is not None:
            return self._transient
        if self.upstream_status is None:
            return True
        return self.upstream_status == 429 or self.upstream_status >= 500

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.is_transient


class GenerationError(UpstreamError):
    """AI reply generation failure."""
    kind = "generation_error"


class InternalError(EngageHubError):
    """Unexpected failure."""
    kind = "internal_error"
