"""
Engagement orchestrator.

Drives comments through their lifecycle: automatic and manual replies,
claiming and status changes, and conversion of interested commenters into
leads.

Reply delivery is at-least-once towards the platform: the reply is sent
before the comment is marked, so a crash between the two can lead to a
second send on the next sweep. Local state is marked at most once, guarded
by a conditional update on ``is_replied``.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import case, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from engagehub.config import settings
from engagehub.core.exceptions import (
    AlreadyLinked,
    AlreadyReplied,
    ConnectorError,
    GenerationError,
    PermissionDenied,
    ResourceNotFound,
    ValidationError,
)
from engagehub.core.logging_config import get_logger
from engagehub.core.metrics import auto_replies_total, leads_generated_total
from engagehub.features.engagement.lead_scorer import is_candidate, score_comment
from engagehub.features.tenancy.resolver import TenantContext
from engagehub.integrations.connectors import PlatformConnector, build_connector
from engagehub.integrations.reply_generator import AIConfig, ReplyGenerator, reply_generator
from engagehub.models.base import utcnow
from engagehub.models.comment import Comment, CommentStatus, Sentiment
from engagehub.models.lead import Lead, LeadSource, LeadStatus
from engagehub.models.tenant import Tenant
from engagehub.models.user import MembershipStatus, TenantMembership

logger = get_logger(__name__)

# Position of each status along the forward path
STATUS_RANK: dict[str, int] = {
    CommentStatus.NEW.value: 0,
    CommentStatus.IN_PROGRESS.value: 1,
    CommentStatus.REPLIED.value: 2,
    CommentStatus.RESOLVED.value: 3,
    CommentStatus.ARCHIVED.value: 3,
}

LEAD_UPDATABLE_FIELDS = (
    "name", "email", "phone", "username", "status", "priority", "score",
    "tags", "assigned_to_id",
)


class ReplyStatus:
    REPLIED = "replied"
    GENERATION_FAILED = "generation_failed"
    SEND_FAILED = "send_failed"
    SKIPPED = "skipped"


@dataclass
class ReplyOutcome:
    comment_id: str
    status: str
    error: str | None = None


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


class EngagementOrchestrator:
    """Reply and lead workflows over stored comments."""

    def __init__(
        self,
        generator: ReplyGenerator | None = None,
        connector_factory: Callable[[Tenant, str], PlatformConnector] | None = None,
        call_timeout: float | None = None,
    ):
        self.generator = generator or reply_generator
        self.connector_factory = connector_factory or build_connector
        self.call_timeout = call_timeout or settings.external_call_timeout_seconds

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_comment(self, db: AsyncSession, tenant_id: str, comment_id: str) -> Comment:
        result = await db.execute(
            select(Comment).where(Comment.id == comment_id, Comment.tenant_id == tenant_id)
        )
        comment = result.scalar_one_or_none()
        if comment is None:
            raise ResourceNotFound("Comment not found", details={"comment_id": comment_id})
        return comment

    async def get_lead(self, db: AsyncSession, tenant_id: str, lead_id: str) -> Lead:
        result = await db.execute(
            select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id)
        )
        lead = result.scalar_one_or_none()
        if lead is None:
            raise ResourceNotFound("Lead not found", details={"lead_id": lead_id})
        return lead

    # ------------------------------------------------------------------
    # Replies
    # ------------------------------------------------------------------

    async def process_unreplied(
        self,
        db: AsyncSession,
        tenant: Tenant,
        limit: int = 10,
    ) -> list[ReplyOutcome]:
        """
        Auto-reply to the tenant's oldest new, unreplied comments.

        Each comment is handled independently and committed on its own. A
        fatal connector error (bad credentials, missing configuration)
        skips the rest of that platform's comments in this batch.
        """
        if not tenant.auto_reply_enabled:
            return []

        result = await db.execute(
            select(Comment)
            .where(
                Comment.tenant_id == tenant.id,
                Comment.is_replied.is_(False),
                Comment.status == CommentStatus.NEW.value,
            )
            .order_by(Comment.created_at.asc())
            .limit(limit)
        )
        comments = list(result.scalars().all())

        ai_config = AIConfig.from_tenant(tenant)
        connectors: dict[str, PlatformConnector] = {}
        blocked: dict[str, str] = {}
        outcomes: list[ReplyOutcome] = []

        for comment in comments:
            platform = comment.platform
            if platform in blocked:
                outcomes.append(ReplyOutcome(comment.id, ReplyStatus.SKIPPED, blocked[platform]))
                auto_replies_total.labels(platform=platform, outcome=ReplyStatus.SKIPPED).inc()
                continue

            try:
                text = await self._generate(comment, ai_config)
            except GenerationError as e:
                logger.warning(
                    "auto_reply_generation_failed",
                    tenant_id=tenant.id,
                    comment_id=comment.id,
                    error=e.message,
                )
                outcomes.append(ReplyOutcome(comment.id, ReplyStatus.GENERATION_FAILED, e.message))
                auto_replies_total.labels(platform=platform, outcome=ReplyStatus.GENERATION_FAILED).inc()
                continue

            try:
                if platform not in connectors:
                    connectors[platform] = self.connector_factory(tenant, platform)
                await self._send(connectors[platform], comment, text)
            except ConnectorError as e:
                logger.warning(
                    "auto_reply_send_failed",
                    tenant_id=tenant.id,
                    comment_id=comment.id,
                    platform=platform,
                    upstream_status=e.upstream_status,
                    transient=e.is_transient,
                )
                if not e.is_transient:
                    blocked[platform] = e.message
                outcomes.append(ReplyOutcome(comment.id, ReplyStatus.SEND_FAILED, e.message))
                auto_replies_total.labels(platform=platform, outcome=ReplyStatus.SEND_FAILED).inc()
                continue

            if await self._mark_replied(db, comment, text, is_auto_reply=True):
                outcomes.append(ReplyOutcome(comment.id, ReplyStatus.REPLIED))
                auto_replies_total.labels(platform=platform, outcome=ReplyStatus.REPLIED).inc()
                logger.info("auto_reply_sent", tenant_id=tenant.id, comment_id=comment.id, platform=platform)
            else:
                outcomes.append(ReplyOutcome(comment.id, ReplyStatus.SKIPPED, "already replied"))
                auto_replies_total.labels(platform=platform, outcome=ReplyStatus.SKIPPED).inc()

        return outcomes

    async def reply_manually(
        self,
        db: AsyncSession,
        context: TenantContext,
        comment_id: str,
        reply_text: str | None = None,
        use_ai: bool = False,
    ) -> Comment:
        """
        Reply to one comment on behalf of a user.

        Raises:
            ResourceNotFound: Comment not in this tenant
            AlreadyReplied: Comment already has a reply
            ValidationError: No reply text available
            GenerationError: AI generation failed or timed out
            ConnectorError: Platform rejected the reply or timed out
        """
        comment = await self.get_comment(db, context.tenant_id, comment_id)
        if comment.is_replied:
            raise AlreadyReplied("Comment already replied to", details={"comment_id": comment_id})

        tenant = context.tenant
        text = reply_text
        generated = False
        if use_ai and tenant.auto_reply_enabled:
            text = await self._generate(comment, AIConfig.from_tenant(tenant))
            generated = True

        if not text or not text.strip():
            raise ValidationError("Reply text is required")

        connector = self.connector_factory(tenant, comment.platform)
        await self._send(connector, comment, text)

        if not await self._mark_replied(db, comment, text, is_auto_reply=generated):
            raise AlreadyReplied("Comment already replied to", details={"comment_id": comment_id})

        auto_replies_total.labels(platform=comment.platform, outcome="manual").inc()
        logger.info("manual_reply_sent", tenant_id=tenant.id, comment_id=comment.id, ai=generated)
        return comment

    async def _generate(self, comment: Comment, ai_config: AIConfig) -> str:
        try:
            return await asyncio.wait_for(
                self.generator.generate(
                    comment.comment_text,
                    ai_config,
                    {"sentiment": _value(comment.sentiment)},
                ),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError:
            raise GenerationError("Reply generation timed out", details={"comment_id": comment.id})

    async def _send(self, connector: PlatformConnector, comment: Comment, text: str) -> None:
        try:
            await asyncio.wait_for(
                connector.send_reply(comment.comment_id, text),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError:
            raise ConnectorError(
                "Reply delivery timed out",
                platform=comment.platform,
                transient=True,
            )

    async def _mark_replied(
        self,
        db: AsyncSession,
        comment: Comment,
        text: str,
        is_auto_reply: bool,
    ) -> bool:
        """Mark a comment replied unless someone else already did. Commits."""
        now = utcnow()
        result = await db.execute(
            update(Comment)
            .where(Comment.id == comment.id, Comment.is_replied.is_(False))
            .values(
                is_replied=True,
                reply_text=text,
                reply_sent_at=now,
                is_auto_reply=is_auto_reply,
                # Never move a resolved or archived comment backwards
                status=case(
                    (
                        Comment.status.in_([CommentStatus.NEW.value, CommentStatus.IN_PROGRESS.value]),
                        CommentStatus.REPLIED.value,
                    ),
                    else_=Comment.status,
                ),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(comment)
        return result.rowcount == 1

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    async def claim(
        self,
        db: AsyncSession,
        context: TenantContext,
        comment_id: str,
        assignee_id: str,
        actor_id: str | None = None,
    ) -> Comment:
        """Assign a comment, moving it from new to in_progress."""
        comment = await self.get_comment(db, context.tenant_id, comment_id)

        if assignee_id != actor_id:
            result = await db.execute(
                select(TenantMembership.id).where(
                    TenantMembership.user_id == assignee_id,
                    TenantMembership.tenant_id == context.tenant_id,
                    TenantMembership.status == MembershipStatus.ACTIVE.value,
                )
            )
            if result.scalar_one_or_none() is None:
                raise ValidationError(
                    "Assignee is not an active member of this tenant",
                    details={"assignee_id": assignee_id},
                )

        comment.assigned_to_id = assignee_id
        if comment.status == CommentStatus.NEW.value:
            comment.status = CommentStatus.IN_PROGRESS.value
        await db.commit()

        logger.info("comment_claimed", tenant_id=context.tenant_id, comment_id=comment.id, assignee_id=assignee_id)
        return comment

    async def update_status(
        self,
        db: AsyncSession,
        context: TenantContext,
        comment_id: str,
        new_status: str,
        override: bool = False,
    ) -> Comment:
        """
        Move a comment along new -> in_progress -> replied -> resolved|archived.

        Backward moves need ``override``. ``replied`` is only reachable for
        comments that actually have a reply, and ``is_replied`` never reverts.
        """
        comment = await self.get_comment(db, context.tenant_id, comment_id)
        target = _value(new_status)
        if target not in STATUS_RANK:
            raise ValidationError(f"Unknown status: {target}")

        current = _value(comment.status)
        if target == current:
            return comment

        if target == CommentStatus.REPLIED.value and not comment.is_replied:
            raise ValidationError("Comment has not been replied to")

        if STATUS_RANK[target] < STATUS_RANK[current] and not override:
            raise PermissionDenied(
                f"Moving a comment from {current} back to {target} requires moderation rights",
                details={"from": current, "to": target},
            )

        comment.status = target
        await db.commit()

        logger.info(
            "comment_status_changed",
            tenant_id=context.tenant_id,
            comment_id=comment.id,
            from_status=current,
            to_status=target,
            override=override,
        )
        return comment

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    async def generate_leads(self, db: AsyncSession, tenant: Tenant) -> list[Lead]:
        """
        Create leads from positive comments that show buying interest.

        Each comment is claimed with a conditional ``is_lead`` update before
        its lead is inserted, so concurrent sweeps cannot create two leads
        for one comment. Each lead commits in its own transaction.
        """
        result = await db.execute(
            select(Comment)
            .where(
                Comment.tenant_id == tenant.id,
                Comment.is_lead.is_(False),
                Comment.status.in_([CommentStatus.NEW.value, CommentStatus.IN_PROGRESS.value]),
                or_(
                    Comment.sentiment == Sentiment.POSITIVE.value,
                    Comment.sentiment_score > 0.5,
                ),
            )
            .order_by(Comment.created_at.asc())
        )
        candidates = [c for c in result.scalars().all() if is_candidate(c)]

        leads: list[Lead] = []
        for comment in candidates:
            if not await self._claim_for_lead(db, comment.id):
                continue

            draft = score_comment(comment)
            lead = Lead(
                tenant_id=tenant.id,
                source=draft.source.value,
                comment_id=comment.id,
                name=draft.name,
                username=draft.username,
                platform_profile_url=draft.platform_profile_url,
                status=LeadStatus.NEW.value,
                priority=draft.priority.value,
                score=draft.score,
                tags=[],
                notes=[],
                lead_metadata=draft.lead_metadata,
            )
            await self._link_lead(db, comment, lead)
            leads.append(lead)
            leads_generated_total.labels(source=lead.source).inc()

        if leads:
            logger.info("leads_generated", tenant_id=tenant.id, count=len(leads))
        return leads

    async def create_lead(
        self,
        db: AsyncSession,
        context: TenantContext,
        data: dict[str, Any],
        actor_id: str | None = None,
    ) -> Lead:
        """
        Create a lead by hand, optionally linked to a comment.

        Raises:
            ResourceNotFound: Linked comment not in this tenant
            AlreadyLinked: Linked comment already backs a lead
        """
        comment_id = data.get("comment_id")
        comment = None
        source = LeadSource.MANUAL.value

        if comment_id:
            comment = await self.get_comment(db, context.tenant_id, comment_id)
            if comment.is_lead or not await self._claim_for_lead(db, comment.id):
                raise AlreadyLinked("Comment is already linked to a lead", details={"comment_id": comment_id})
            source = _value(comment.platform)

        lead = Lead(
            tenant_id=context.tenant_id,
            source=source,
            comment_id=comment.id if comment else None,
            name=data["name"],
            email=data.get("email"),
            phone=data.get("phone"),
            username=data.get("username"),
            platform_profile_url=data.get("platform_profile_url"),
            status=_value(data.get("status") or LeadStatus.NEW),
            priority=_value(data.get("priority") or "medium"),
            score=data.get("score") or 0,
            tags=list(data.get("tags") or []),
            notes=[],
            assigned_to_id=data.get("assigned_to_id"),
            lead_metadata={"created_by": actor_id} if actor_id else None,
        )

        if comment is not None:
            await self._link_lead(db, comment, lead)
        else:
            db.add(lead)
            await db.commit()

        leads_generated_total.labels(source=source).inc()
        logger.info("lead_created", tenant_id=context.tenant_id, lead_id=lead.id, source=source)
        return lead

    async def update_lead(
        self,
        db: AsyncSession,
        context: TenantContext,
        lead_id: str,
        changes: dict[str, Any],
    ) -> Lead:
        lead = await self.get_lead(db, context.tenant_id, lead_id)
        for field in LEAD_UPDATABLE_FIELDS:
            if field in changes:
                value = changes[field]
                setattr(lead, field, list(value) if field == "tags" else _value(value))
        await db.commit()

        logger.info("lead_updated", tenant_id=context.tenant_id, lead_id=lead.id, fields=sorted(changes))
        return lead

    async def add_note(
        self,
        db: AsyncSession,
        context: TenantContext,
        lead_id: str,
        text: str,
        author_id: str | None,
    ) -> Lead:
        """Append a note. Existing notes are never modified."""
        if not text or not text.strip():
            raise ValidationError("Note text is required")

        lead = await self.get_lead(db, context.tenant_id, lead_id)
        note = {
            "text": text.strip(),
            "created_by": author_id,
            "created_at": utcnow().isoformat(),
        }
        lead.notes = [*(lead.notes or []), note]
        await db.commit()
        return lead

    async def delete_lead(self, db: AsyncSession, context: TenantContext, lead_id: str) -> None:
        """
        Delete a lead.

        The source comment keeps ``is_lead`` so the next sweep does not
        recreate the lead.
        """
        lead = await self.get_lead(db, context.tenant_id, lead_id)
        await db.execute(
            update(Comment)
            .where(Comment.lead_id == lead.id)
            .values(lead_id=None, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.delete(lead)
        await db.commit()
        logger.info("lead_deleted", tenant_id=context.tenant_id, lead_id=lead_id)

    async def _claim_for_lead(self, db: AsyncSession, comment_id: str) -> bool:
        result = await db.execute(
            update(Comment)
            .where(Comment.id == comment_id, Comment.is_lead.is_(False))
            .values(is_lead=True, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _link_lead(self, db: AsyncSession, comment: Comment, lead: Lead) -> None:
        """Insert the lead and point the claimed comment at it, in one commit."""
        db.add(lead)
        await db.flush()
        await db.execute(
            update(Comment)
            .where(Comment.id == comment.id)
            .values(lead_id=lead.id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(comment)


engagement_orchestrator = EngagementOrchestrator()
