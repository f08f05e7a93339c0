"""
Comment sync: polls tracked posts through the platform connectors and
feeds every fetched comment to the ingestion gateway.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.config import settings
from engagehub.core.exceptions import ConnectorError
from engagehub.core.logging_config import get_logger
from engagehub.features.ingestion.gateway import IngestionGateway, ingestion_gateway
from engagehub.integrations.connectors import PlatformConnector, build_connector
from engagehub.models.base import utcnow
from engagehub.models.post import Post
from engagehub.models.tenant import Platform, Tenant

logger = get_logger(__name__)


@dataclass
class SyncSummary:
    fetched: int = 0
    created: int = 0
    failed_posts: int = 0

    def add(self, other: "SyncSummary") -> None:
        self.fetched += other.fetched
        self.created += other.created
        self.failed_posts += other.failed_posts


class CommentSync:
    def __init__(
        self,
        connector_factory: Callable[[Tenant, str], PlatformConnector] | None = None,
        gateway: IngestionGateway | None = None,
        call_timeout: float | None = None,
    ):
        self.connector_factory = connector_factory or build_connector
        self.gateway = gateway or ingestion_gateway
        self.call_timeout = call_timeout or settings.external_call_timeout_seconds

    async def sync_post(
        self,
        db: AsyncSession,
        tenant: Tenant,
        platform: str,
        post_id: str,
        connector: PlatformConnector | None = None,
    ) -> SyncSummary:
        """
        Fetch and ingest the comments of one post.

        Raises:
            ConnectorError: Fetch failed or timed out
        """
        connector = connector or self.connector_factory(tenant, platform)
        try:
            items = await asyncio.wait_for(connector.fetch_comments(post_id), timeout=self.call_timeout)
        except asyncio.TimeoutError:
            raise ConnectorError("Comment fetch timed out", platform=platform, transient=True)

        summary = SyncSummary(fetched=len(items))
        for item in items:
            result = await self.gateway.ingest(db, tenant.id, {**item, "type": "comment"}, platform)
            if result.created:
                summary.created += 1
        return summary

    async def sync_tenant(self, db: AsyncSession, tenant: Tenant) -> SyncSummary:
        """
        Sync every tracked post on each enabled, configured platform.

        A failing post is logged and skipped; a fatal connector error stops
        that platform for this run and leaves its last-sync time untouched.
        """
        summary = SyncSummary()

        for platform in (Platform.INSTAGRAM.value, Platform.FACEBOOK.value):
            access_token, _ = tenant.platform_credentials(platform)
            if not tenant.platform_enabled(platform) or not access_token:
                continue

            connector = self.connector_factory(tenant, platform)
            result = await db.execute(
                select(Post).where(Post.tenant_id == tenant.id, Post.platform == platform)
            )
            posts = list(result.scalars().all())

            blocked = False
            for post in posts:
                try:
                    summary.add(await self.sync_post(db, tenant, platform, post.external_id, connector))
                except ConnectorError as e:
                    summary.failed_posts += 1
                    logger.warning(
                        "post_sync_failed",
                        tenant_id=tenant.id,
                        platform=platform,
                        post_id=post.external_id,
                        upstream_status=e.upstream_status,
                        transient=e.is_transient,
                    )
                    if not e.is_transient:
                        blocked = True
                        break
                    continue
                post.last_synced_at = utcnow()

            # A platform that rejected our credentials has not been synced
            if not blocked:
                tenant.mark_synced(platform, utcnow())
            await db.commit()

        logger.info(
            "tenant_comments_synced",
            tenant_id=tenant.id,
            fetched=summary.fetched,
            created=summary.created,
            failed_posts=summary.failed_posts,
        )
        return summary


comment_sync = CommentSync()
