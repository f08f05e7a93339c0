"""
Integration tests for the ingestion gateway and comment sync.
"""

import pytest
from sqlalchemy import func, select

from engagehub.core.exceptions import ConnectorError, ValidationError
from engagehub.features.ingestion.gateway import IngestionGateway, ingestion_gateway
from engagehub.models import Comment, InboxItem, Post
from tests.factories import TenantFactory

COMMENT_EVENT = {
    "type": "comment",
    "id": "ig_c_1",
    "text": "Love it! What's the price?",
    "from": {"id": "u1", "username": "jane"},
    "post_id": "ig_post_1",
}


async def count(db, model, tenant_id) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(model.tenant_id == tenant_id))
    return result.scalar_one()


@pytest.mark.integration
class TestIngestionGateway:
    async def test_comment_stored_with_sentiment(self, db_session, tenant):
        result = await ingestion_gateway.ingest(db_session, tenant.id, COMMENT_EVENT, "instagram")

        comment = result.record
        assert result.created is True
        assert result.kind == "comment"
        assert comment.tenant_id == tenant.id
        assert comment.comment_id == "ig_c_1"
        assert comment.author_username == "jane"
        assert comment.sentiment == "positive"
        assert comment.sentiment_score == 1.0
        assert comment.status == "new"
        assert comment.is_replied is False
        assert comment.is_lead is False

    async def test_redelivery_is_idempotent(self, db_session, tenant):
        first = await ingestion_gateway.ingest(db_session, tenant.id, COMMENT_EVENT, "instagram")
        second = await ingestion_gateway.ingest(
            db_session, tenant.id, {**COMMENT_EVENT, "text": "edited"}, "instagram",
        )

        assert second.created is False
        assert second.record.id == first.record.id
        assert second.record.comment_text == COMMENT_EVENT["text"]
        assert await count(db_session, Comment, tenant.id) == 1

    async def test_concurrent_delivery_returns_the_stored_row(self, db_session, tenant, monkeypatch):
        gateway = IngestionGateway()
        winner = await gateway.ingest(db_session, tenant.id, COMMENT_EVENT, "instagram")

        real_find = gateway._find_comment
        lookups = []

        async def find_after_other_writer(db, tenant_id, comment_id):
            lookups.append(comment_id)
            if len(lookups) == 1:
                # The other delivery had not committed when we checked
                return None
            return await real_find(db, tenant_id, comment_id)

        monkeypatch.setattr(gateway, "_find_comment", find_after_other_writer)

        loser = await gateway.ingest(db_session, tenant.id, {**COMMENT_EVENT, "text": "edited"}, "instagram")

        assert len(lookups) == 2
        assert loser.created is False
        assert loser.record.id == winner.record.id
        assert loser.record.comment_text == COMMENT_EVENT["text"]
        assert await count(db_session, Comment, tenant.id) == 1

    async def test_same_external_id_in_two_tenants(self, db_session, tenant, other_tenant):
        await ingestion_gateway.ingest(db_session, tenant.id, COMMENT_EVENT, "instagram")
        result = await ingestion_gateway.ingest(db_session, other_tenant.id, COMMENT_EVENT, "instagram")

        assert result.created is True
        assert result.record.tenant_id == other_tenant.id

    async def test_dm_goes_to_inbox(self, db_session, tenant):
        event = {"type": "dm", "id": "m1", "text": "This is terrible", "threadId": "t1", "urgency": "high"}
        result = await ingestion_gateway.ingest(db_session, tenant.id, event, "instagram")

        item = result.record
        assert result.kind == "inbox_item"
        assert item.type == "dm"
        assert item.thread_id == "t1"
        assert item.urgency == "high"
        assert item.sentiment == "negative"
        assert item.read is False
        assert item.status == "open"
        assert await count(db_session, Comment, tenant.id) == 0

    async def test_inbox_redelivery_is_idempotent(self, db_session, tenant):
        event = {"type": "mention", "id": "x1", "text": "hey"}
        await ingestion_gateway.ingest(db_session, tenant.id, event, "instagram")
        result = await ingestion_gateway.ingest(db_session, tenant.id, event, "instagram")

        assert result.created is False
        assert await count(db_session, InboxItem, tenant.id) == 1

    async def test_inbox_item_without_external_id_always_stored(self, db_session, tenant):
        event = {"type": "reaction", "text": "❤"}
        await ingestion_gateway.ingest(db_session, tenant.id, event, "instagram")
        await ingestion_gateway.ingest(db_session, tenant.id, event, "instagram")

        assert await count(db_session, InboxItem, tenant.id) == 2

    async def test_unknown_type_stored_as_comment(self, db_session, tenant):
        event = {"type": "story_reply", "id": "c1", "postId": "p1", "text": "love it"}

        result = await ingestion_gateway.ingest(db_session, tenant.id, event, "instagram")

        assert result.kind == "comment"
        assert result.created is True
        stored = (await db_session.execute(select(Comment).where(Comment.tenant_id == tenant.id))).scalar_one()
        assert stored.comment_id == "c1"
        assert stored.post_id == "p1"
        assert stored.comment_text == "love it"
        assert await count(db_session, InboxItem, tenant.id) == 0

    async def test_non_object_event_rejected(self, db_session, tenant):
        with pytest.raises(ValidationError):
            await ingestion_gateway.ingest(db_session, tenant.id, ["not", "an", "object"], "instagram")


@pytest.mark.integration
class TestCommentSync:
    async def track(self, db, tenant, external_id="ig_post_1", platform="instagram") -> Post:
        post = Post(tenant_id=tenant.id, platform=platform, external_id=external_id)
        db.add(post)
        await db.commit()
        return post

    async def test_sync_post(self, db_session, tenant, comment_sync, stub_connector):
        stub_connector.comments = [
            {"id": "c1", "text": "Great", "author": {"id": "u1", "username": "a"}},
            {"id": "c2", "text": "Awful", "author": {"id": "u2", "username": "b"}},
        ]

        summary = await comment_sync.sync_post(db_session, tenant, "instagram", "ig_post_1")

        assert summary.fetched == 2
        assert summary.created == 2
        result = await db_session.execute(select(Comment).where(Comment.tenant_id == tenant.id))
        assert {c.post_id for c in result.scalars().all()} == {"ig_post_1"}

    async def test_sync_tenant_is_idempotent(self, db_session, tenant, comment_sync, stub_connector):
        post = await self.track(db_session, tenant)
        stub_connector.comments = [{"id": "c1", "text": "Nice"}]

        first = await comment_sync.sync_tenant(db_session, tenant)
        second = await comment_sync.sync_tenant(db_session, tenant)

        assert first.created == 1
        assert second.fetched == 1
        assert second.created == 0
        assert await count(db_session, Comment, tenant.id) == 1
        assert post.last_synced_at is not None
        assert tenant.instagram_last_sync_at is not None

    async def test_failed_post_is_counted(self, db_session, tenant, comment_sync, stub_connector):
        await self.track(db_session, tenant)
        stub_connector.fetch_error = ConnectorError("down", upstream_status=503)

        summary = await comment_sync.sync_tenant(db_session, tenant)

        assert summary.failed_posts == 1
        assert summary.created == 0

    async def test_fatal_error_does_not_mark_platform_synced(self, db_session, tenant, comment_sync, stub_connector):
        first = await self.track(db_session, tenant, external_id="ig_post_1")
        await self.track(db_session, tenant, external_id="ig_post_2")
        stub_connector.fetch_error = ConnectorError("token expired", upstream_status=401)

        summary = await comment_sync.sync_tenant(db_session, tenant)

        assert summary.failed_posts == 1
        assert first.last_synced_at is None
        assert tenant.instagram_last_sync_at is None

    async def test_transient_error_still_marks_platform_synced(
        self, db_session, tenant, comment_sync, stub_connector,
    ):
        await self.track(db_session, tenant)
        stub_connector.fetch_error = ConnectorError("down", upstream_status=503)

        await comment_sync.sync_tenant(db_session, tenant)

        assert tenant.instagram_last_sync_at is not None

    async def test_disabled_platform_skipped(self, db_session, comment_sync, stub_connector):
        tenant = await TenantFactory.create(db_session, instagram_enabled=False, instagram_access_token="tok")
        await self.track(db_session, tenant)
        stub_connector.comments = [{"id": "c1", "text": "Nice"}]

        summary = await comment_sync.sync_tenant(db_session, tenant)

        assert summary.fetched == 0
