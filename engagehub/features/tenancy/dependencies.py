"""
Tenant context and permission dependencies.

Every tenant-scoped route depends on ``require_permission`` (or
``get_tenant_context`` directly), which resolves the context once and
runs the permission engine before the handler executes.
"""

import json
from typing import Annotated, Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.context import set_request_context
from engagehub.core.database import get_db
from engagehub.features.auth.dependencies import CurrentUser
from engagehub.features.tenancy.permissions import permission_engine
from engagehub.features.tenancy.resolver import TenantContext, tenant_resolver

TENANT_HEADER = "X-Tenant-ID"
BODY_TENANT_FIELDS = ("tenant", "tenant_id")


async def _body_tenant_id(request: Request) -> Any:
    if request.method in ("GET", "HEAD", "DELETE"):
        return None
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(body, dict):
        return None
    for field in BODY_TENANT_FIELDS:
        if body.get(field):
            return body[field]
    return None


async def claimed_tenant_id(request: Request) -> str | None:
    """
    Tenant identifier claimed by a request.

    Precedence: path parameter, then body field (``tenant`` or
    ``tenant_id``), then the ``X-Tenant-ID`` header.
    """
    from_path = request.path_params.get("tenant_id")
    if from_path:
        return str(from_path)

    from_body = await _body_tenant_id(request)
    if from_body:
        return str(from_body)

    return request.headers.get(TENANT_HEADER)


async def get_tenant_context(
    request: Request,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TenantContext:
    context = await tenant_resolver.resolve(db, current_user, await claimed_tenant_id(request))

    request.state.tenant_id = context.tenant_id
    set_request_context(tenant_id=context.tenant_id)
    return context


TenantCtx = Annotated[TenantContext, Depends(get_tenant_context)]


def require_permission(resource: str, action: str):
    """
    Dependency factory for permission checks inside the resolved tenant.

    Usage:
        @router.post("/{tenant_id}/comments/{comment_id}/reply")
        async def reply(
            context: Annotated[TenantContext, Depends(require_permission("comments", "reply"))],
        ):
            ...
    """
    async def permission_checker(
        current_user: CurrentUser,
        context: TenantCtx,
    ) -> TenantContext:
        permission_engine.require(current_user, context, resource, action)
        return context

    return permission_checker
