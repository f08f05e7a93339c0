"""
API v1 router aggregator.

All v1 routes are registered here.
"""

from fastapi import APIRouter

from engagehub.features.admin.router import router as admin_router
from engagehub.features.auth.router import router as auth_router
from engagehub.features.engagement.router import (
    comments_router,
    inbox_router,
    leads_router,
    posts_router,
)
from engagehub.features.ingestion.router import router as webhooks_router
from engagehub.features.tenancy.router import router as tenants_router
from engagehub.schemas.common import ErrorResponse

# V1 API router
v1_router = APIRouter(
    prefix="/v1",
    responses={
        code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 502)
    },
)

# Register all feature routers
v1_router.include_router(auth_router)
v1_router.include_router(tenants_router)
v1_router.include_router(comments_router)
v1_router.include_router(leads_router)
v1_router.include_router(inbox_router)
v1_router.include_router(posts_router)
v1_router.include_router(webhooks_router)
v1_router.include_router(admin_router)
