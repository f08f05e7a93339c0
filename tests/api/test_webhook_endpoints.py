"""
API tests for inbound platform webhooks.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from engagehub.models import Comment, InboxItem

EVENT = {
    "type": "comment",
    "id": "ig_c_100",
    "text": "Amazing! How much?",
    "from": {"id": "u1", "username": "jane"},
    "post_id": "ig_post_1",
}


async def count(db, model, tenant_id) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(model.tenant_id == tenant_id))
    return result.scalar_one()


@pytest.mark.api
class TestVerification:
    async def test_challenge_echoed(self, client: AsyncClient, tenant):
        response = await client.get(
            f"/api/v1/webhooks/{tenant.id}/instagram",
            params={"hub.mode": "subscribe", "hub.challenge": "12345"},
        )

        assert response.status_code == 200
        assert response.text == "12345"

    async def test_without_challenge(self, client: AsyncClient, tenant):
        response = await client.get(f"/api/v1/webhooks/{tenant.id}/instagram")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_by_slug(self, client: AsyncClient, tenant):
        response = await client.get(
            "/api/v1/webhooks/slug/test-corp/instagram", params={"hub.challenge": "abc"},
        )
        assert response.text == "abc"

    @pytest.mark.parametrize("tenant_ref", [str(uuid.uuid4()), "not-a-uuid"])
    async def test_unknown_tenant(self, client: AsyncClient, tenant_ref):
        response = await client.get(f"/api/v1/webhooks/{tenant_ref}/instagram")

        assert response.status_code == 404
        assert response.json()["error"]["kind"] == "tenant_not_found"


@pytest.mark.api
class TestReceive:
    async def test_event_ingested_once(self, client: AsyncClient, db_session, tenant):
        tenant_id = tenant.id
        url = f"/api/v1/webhooks/{tenant_id}/instagram"

        for _ in range(3):
            response = await client.post(url, json=EVENT)
            assert response.status_code == 200
            assert response.json() == {"received": True, "tenant_id": tenant_id}

        assert await count(db_session, Comment, tenant_id) == 1
        result = await db_session.execute(select(Comment).where(Comment.tenant_id == tenant_id))
        comment = result.scalar_one()
        assert comment.sentiment == "positive"
        assert comment.status == "new"

    async def test_batch_of_events(self, client: AsyncClient, db_session, tenant):
        tenant_id = tenant.id
        batch = [EVENT, {**EVENT, "id": "ig_c_101"}, {"type": "dm", "id": "m1", "text": "hi"}]

        response = await client.post(f"/api/v1/webhooks/{tenant_id}/instagram", json=batch)

        assert response.status_code == 200
        assert await count(db_session, Comment, tenant_id) == 2
        assert await count(db_session, InboxItem, tenant_id) == 1

    async def test_by_slug(self, client: AsyncClient, db_session, tenant):
        tenant_id = tenant.id

        response = await client.post("/api/v1/webhooks/slug/test-corp/instagram", json=EVENT)

        assert response.status_code == 200
        assert response.json() == {"received": True, "tenant_id": tenant_id, "tenant_slug": "test-corp"}
        assert await count(db_session, Comment, tenant_id) == 1

    async def test_invalid_event_acknowledged(self, client: AsyncClient, db_session, tenant):
        tenant_id = tenant.id

        response = await client.post(
            f"/api/v1/webhooks/{tenant_id}/instagram",
            json=["garbage", EVENT],
        )

        assert response.status_code == 200
        assert await count(db_session, Comment, tenant_id) == 1

    async def test_unknown_event_type_stored_as_comment(self, client: AsyncClient, db_session, tenant):
        tenant_id = tenant.id

        response = await client.post(
            f"/api/v1/webhooks/{tenant_id}/instagram",
            json=[{"type": "story_reply", "id": "c1", "postId": "p1", "text": "love it"}, EVENT],
        )

        assert response.status_code == 200
        assert await count(db_session, Comment, tenant_id) == 2
        assert await count(db_session, InboxItem, tenant_id) == 0

    async def test_malformed_body_acknowledged(self, client: AsyncClient, tenant):
        tenant_id = tenant.id

        response = await client.post(
            f"/api/v1/webhooks/{tenant_id}/instagram",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200

    async def test_unknown_tenant(self, client: AsyncClient):
        response = await client.post(f"/api/v1/webhooks/{uuid.uuid4()}/instagram", json=EVENT)
        assert response.status_code == 404

    async def test_events_isolated_per_tenant(self, client: AsyncClient, db_session, tenant, other_tenant):
        tenant_id, other_id = tenant.id, other_tenant.id

        await client.post(f"/api/v1/webhooks/{tenant_id}/instagram", json=EVENT)
        await client.post(f"/api/v1/webhooks/{other_id}/instagram", json=EVENT)

        assert await count(db_session, Comment, tenant_id) == 1
        assert await count(db_session, Comment, other_id) == 1
