"""
Ingestion gateway.

Single entry point for inbound platform events, whether they come from a
webhook or from the comment sync job. Each external event becomes exactly
one stored record, no matter how many times it is delivered.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.core.logging_config import get_logger
from engagehub.core.metrics import comments_ingested_total, ingest_duplicates_total
from engagehub.features.engagement.sentiment import classify
from engagehub.features.ingestion.normalizer import NormalizedEvent, normalize_event
from engagehub.models.base import new_id, utcnow
from engagehub.models.comment import Comment, CommentStatus
from engagehub.models.inbox import InboxItem, InboxStatus

logger = get_logger(__name__)


@dataclass
class IngestResult:
    record: Comment | InboxItem
    created: bool

    @property
    def kind(self) -> str:
        return "comment" if isinstance(self.record, Comment) else "inbox_item"


def insert_ignoring_conflicts(db: AsyncSession, model: type, index_elements: list[str]):
    """``INSERT ... ON CONFLICT (index_elements) DO NOTHING`` for the session's dialect."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise NotImplementedError(f"Conflict-ignoring insert not supported on {dialect}")
    return stmt.on_conflict_do_nothing(index_elements=index_elements)


class IngestionGateway:
    """Normalizes, deduplicates, classifies and stores inbound events."""

    async def ingest(
        self,
        db: AsyncSession,
        tenant_id: str,
        raw_event: dict[str, Any],
        platform: str | None = None,
    ) -> IngestResult:
        """
        Store one inbound event for a tenant.

        Returns the stored record and whether this call created it. A
        re-delivered event returns the existing record unchanged.

        Raises:
            ValidationError: Payload cannot be normalized
        """
        event = normalize_event(raw_event, platform)

        if event.is_comment:
            result = await self._ingest_comment(db, tenant_id, event)
        else:
            result = await self._ingest_inbox_item(db, tenant_id, event)

        if result.created:
            comments_ingested_total.labels(platform=event.platform, kind=result.kind).inc()
            logger.info(
                "event_ingested",
                tenant_id=tenant_id,
                kind=result.kind,
                platform=event.platform,
                external_id=event.external_id,
            )
        else:
            ingest_duplicates_total.labels(kind=result.kind).inc()
            logger.debug(
                "event_duplicate_ignored",
                tenant_id=tenant_id,
                kind=result.kind,
                external_id=event.external_id,
            )
        return result

    async def _find_comment(self, db: AsyncSession, tenant_id: str, comment_id: str) -> Comment | None:
        result = await db.execute(
            select(Comment).where(
                Comment.tenant_id == tenant_id,
                Comment.comment_id == comment_id,
            )
        )
        return result.scalar_one_or_none()

    async def _find_inbox_item(self, db: AsyncSession, tenant_id: str, external_id: str) -> InboxItem | None:
        result = await db.execute(
            select(InboxItem).where(
                InboxItem.tenant_id == tenant_id,
                InboxItem.external_id == external_id,
            )
        )
        return result.scalar_one_or_none()

    async def _ingest_comment(self, db: AsyncSession, tenant_id: str, event: NormalizedEvent) -> IngestResult:
        existing = await self._find_comment(db, tenant_id, event.external_id)
        if existing is not None:
            return IngestResult(record=existing, created=False)

        sentiment = classify(event.text)
        now = utcnow()

        stmt = insert_ignoring_conflicts(db, Comment, ["tenant_id", "comment_id"]).values(
            id=new_id(),
            tenant_id=tenant_id,
            platform=event.platform,
            post_id=event.post_id,
            post_url=event.post_url,
            comment_id=event.external_id,
            comment_text=event.text,
            author_id=event.author_id,
            author_username=event.author_username,
            author_name=event.author_name,
            sentiment=sentiment.label.value,
            sentiment_score=sentiment.score,
            is_replied=False,
            is_auto_reply=False,
            status=CommentStatus.NEW.value,
            is_lead=False,
            like_count=event.like_count,
            commented_at=event.occurred_at,
            raw_data=event.raw,
            created_at=now,
            updated_at=now,
        )
        result = await db.execute(stmt)
        await db.commit()

        # Lost races insert nothing; either way the stored row is the winner
        record = await self._find_comment(db, tenant_id, event.external_id)
        return IngestResult(record=record, created=result.rowcount == 1)

    async def _ingest_inbox_item(self, db: AsyncSession, tenant_id: str, event: NormalizedEvent) -> IngestResult:
        if event.external_id:
            existing = await self._find_inbox_item(db, tenant_id, event.external_id)
            if existing is not None:
                return IngestResult(record=existing, created=False)

        sentiment = classify(event.text)
        now = utcnow()
        values = dict(
            id=new_id(),
            tenant_id=tenant_id,
            type=event.type,
            platform=event.platform,
            post_id=event.post_id,
            external_id=event.external_id,
            thread_id=event.thread_id,
            message_text=event.text,
            direction=event.direction,
            author_id=event.author_id,
            author_name=event.author_name,
            author_username=event.author_username,
            recipient=event.recipient,
            read=False,
            status=InboxStatus.OPEN.value,
            urgency=event.urgency,
            sentiment=sentiment.label.value,
            sentiment_score=sentiment.score,
            raw_data=event.raw,
            created_at=now,
            updated_at=now,
        )

        if not event.external_id:
            item = InboxItem(**values)
            db.add(item)
            await db.commit()
            return IngestResult(record=item, created=True)

        stmt = insert_ignoring_conflicts(db, InboxItem, ["tenant_id", "external_id"]).values(**values)
        result = await db.execute(stmt)
        await db.commit()

        record = await self._find_inbox_item(db, tenant_id, event.external_id)
        return IngestResult(record=record, created=result.rowcount == 1)


ingestion_gateway = IngestionGateway()
