"""
API tests for health, metrics and root endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.api
class TestHealth:
    async def test_liveness(self, client: AsyncClient):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_readiness(self, client: AsyncClient):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["database"]["status"] == "healthy"
        # Lifespan does not run under the test transport
        assert data["checks"]["scheduler"]["status"] == "disabled"

    async def test_detailed(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_metrics(self, client: AsyncClient):
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"

    async def test_request_id_header(self, client: AsyncClient):
        response = await client.get("/health/live", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    async def test_request_id_generated_when_absent(self, client: AsyncClient):
        first = await client.get("/health/live")
        second = await client.get("/health/live")

        assert len(first.headers["X-Request-ID"]) == 36
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]
        assert float(first.headers["X-Process-Time"]) >= 0

    async def test_malformed_request_id_replaced(self, client: AsyncClient):
        response = await client.get("/health/live", headers={"X-Request-ID": "bad id with spaces"})

        assert response.headers["X-Request-ID"] != "bad id with spaces"
        assert len(response.headers["X-Request-ID"]) == 36
