"""
Platform webhook endpoints.

Tenants are addressed either by id or by slug, so each tenant can be given
a unique callback URL per platform. Once the tenant is known, deliveries
are always acknowledged: ingestion failures are logged and reported but
never surfaced to the platform, which would otherwise retry forever.
"""

import json
import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.database import get_db
from engagehub.core.error_tracking import error_tracker
from engagehub.core.exceptions import EngageHubError, TenantNotFound
from engagehub.core.logging_config import get_logger
from engagehub.features.ingestion.gateway import IngestionGateway, ingestion_gateway
from engagehub.models.tenant import Tenant

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def get_gateway() -> IngestionGateway:
    return ingestion_gateway


Gateway = Annotated[IngestionGateway, Depends(get_gateway)]


async def _tenant_by_id(db: AsyncSession, tenant_id: str) -> Tenant:
    try:
        uuid.UUID(tenant_id)
    except ValueError:
        raise TenantNotFound("Tenant not found", details={"tenant_id": tenant_id})

    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise TenantNotFound("Tenant not found", details={"tenant_id": tenant_id})
    return tenant


async def _tenant_by_slug(db: AsyncSession, tenant_slug: str) -> Tenant:
    result = await db.execute(select(Tenant).where(Tenant.slug == tenant_slug))
    tenant = result.scalar_one_or_none()
    if tenant is None:
        raise TenantNotFound("Tenant not found", details={"tenant_slug": tenant_slug})
    return tenant


def _verification_response(challenge: str | None):
    if challenge:
        return PlainTextResponse(challenge)
    return {"status": "ok"}


async def _read_events(request: Request) -> list[Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = {}
    if isinstance(body, list):
        return body
    return [body or {}]


async def _receive(
    request: Request,
    db: AsyncSession,
    gateway: IngestionGateway,
    tenant_id: str,
    platform: str,
) -> None:
    for raw_event in await _read_events(request):
        try:
            await gateway.ingest(db, tenant_id, raw_event, platform)
        except EngageHubError as e:
            await db.rollback()
            logger.warning(
                "webhook_event_rejected",
                tenant_id=tenant_id,
                platform=platform,
                kind=e.kind,
                error=e.message,
            )
        except Exception as e:
            await db.rollback()
            logger.exception("webhook_ingest_failed", tenant_id=tenant_id, platform=platform)
            error_tracker.capture_exception(e, {"tenant_id": tenant_id, "platform": platform})


@router.get("/slug/{tenant_slug}/{platform}")
async def verify_webhook_by_slug(
    tenant_slug: str,
    platform: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    challenge: str | None = Query(None, alias="hub.challenge"),
):
    await _tenant_by_slug(db, tenant_slug)
    return _verification_response(challenge)


@router.post("/slug/{tenant_slug}/{platform}")
async def receive_webhook_by_slug(
    tenant_slug: str,
    platform: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Gateway,
) -> dict[str, Any]:
    tenant = await _tenant_by_slug(db, tenant_slug)
    resolved_id, resolved_slug = tenant.id, tenant.slug
    await _receive(request, db, gateway, resolved_id, platform)
    return {"received": True, "tenant_id": resolved_id, "tenant_slug": resolved_slug}


@router.get("/{tenant_id}/{platform}")
async def verify_webhook(
    tenant_id: str,
    platform: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    challenge: str | None = Query(None, alias="hub.challenge"),
):
    """Subscription handshake: echo ``hub.challenge`` back as plain text."""
    await _tenant_by_id(db, tenant_id)
    return _verification_response(challenge)


@router.post("/{tenant_id}/{platform}")
async def receive_webhook(
    tenant_id: str,
    platform: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Gateway,
) -> dict[str, Any]:
    """Ingest one event (or a list of events) for a tenant."""
    tenant = await _tenant_by_id(db, tenant_id)
    await _receive(request, db, gateway, tenant.id, platform)
    return {"received": True, "tenant_id": tenant_id}
