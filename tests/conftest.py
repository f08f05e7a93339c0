"""
Pytest fixtures for all tests.

Provides:
- In-memory SQLite database (aiosqlite) created per test
- HTTP client over the ASGI app with the database dependency overridden
- Tenants, users and tokens for each principal kind
- Stub platform connector and reply generator
"""

from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from engagehub.core.database import db_manager, get_db
from engagehub.core.exceptions import ConnectorError, GenerationError
from engagehub.features.engagement.orchestrator import EngagementOrchestrator
from engagehub.features.engagement.router import get_comment_sync, get_orchestrator
from engagehub.features.ingestion.sync import CommentSync
from engagehub.main import create_application
from engagehub.models import Tenant, User
from engagehub.models.user import UserType
from tests.factories import MembershipFactory, TenantFactory, UserFactory, auth_headers, role_named

TEST_DATABASE_URL = "sqlite+aiosqlite://"


class StubConnector:
    """In-memory stand-in for a platform connector."""

    def __init__(self, comments: list[dict[str, Any]] | None = None):
        self.comments = comments or []
        self.sent: list[tuple[str, str]] = []
        self.send_error: ConnectorError | None = None
        self.fetch_error: ConnectorError | None = None

    async def fetch_comments(self, post_id: str) -> list[dict[str, Any]]:
        if self.fetch_error is not None:
            raise self.fetch_error
        return [{**item, "post_id": post_id} for item in self.comments]

    async def send_reply(self, comment_id: str, text: str) -> dict[str, Any]:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((comment_id, text))
        return {"id": f"reply_{comment_id}"}


class StubGenerator:
    """Reply generator returning a fixed text, or failing on demand."""

    def __init__(self, text: str = "Thanks for reaching out!"):
        self.text = text
        self.error: GenerationError | None = None
        self.calls: list[str] = []

    async def generate(self, comment_text: str, ai_config: Any, context: dict[str, Any] | None = None) -> str:
        self.calls.append(comment_text)
        if self.error is not None:
            raise self.error
        return self.text


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database with all tables."""
    db_manager.init(TEST_DATABASE_URL)
    await db_manager.create_all()
    yield db_manager.session_factory
    await db_manager.close()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def stub_connector() -> StubConnector:
    return StubConnector()


@pytest.fixture
def stub_generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def orchestrator(stub_connector, stub_generator) -> EngagementOrchestrator:
    return EngagementOrchestrator(
        generator=stub_generator,
        connector_factory=lambda tenant, platform: stub_connector,
        call_timeout=1.0,
    )


@pytest.fixture
def comment_sync(stub_connector) -> CommentSync:
    return CommentSync(connector_factory=lambda tenant, platform: stub_connector, call_timeout=1.0)


@pytest_asyncio.fixture
async def app(db_session: AsyncSession, orchestrator, comment_sync):
    """FastAPI app sharing the test session and the stubbed services."""
    application = create_application()

    async def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_orchestrator] = lambda: orchestrator
    application.dependency_overrides[get_comment_sync] = lambda: comment_sync
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Test data

@pytest_asyncio.fixture
async def tenant(db_session: AsyncSession) -> Tenant:
    """Active tenant with system roles, Instagram configured and auto-reply on."""
    return await TenantFactory.create(
        db_session,
        name="Test Corporation",
        slug="test-corp",
        instagram_enabled=True,
        instagram_access_token="ig-token",
        instagram_page_id="ig-page",
        auto_reply_enabled=True,
        lead_generation_enabled=True,
    )


@pytest_asyncio.fixture
async def other_tenant(db_session: AsyncSession) -> Tenant:
    return await TenantFactory.create(db_session, name="Other Inc", slug="other-inc")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession, tenant: Tenant) -> User:
    """Tenant admin holding the Manager role."""
    user = await UserFactory.create(db_session, email="admin@example.com", user_type=UserType.TENANT_ADMIN.value)
    await MembershipFactory.create(db_session, user, tenant, await role_named(db_session, tenant, "Manager"))
    return user


@pytest_asyncio.fixture
async def agent_user(db_session: AsyncSession, tenant: Tenant) -> User:
    """Agent holding the Agent role (level 4)."""
    user = await UserFactory.create(db_session, email="agent@example.com")
    await MembershipFactory.create(db_session, user, tenant, await role_named(db_session, tenant, "Agent"))
    return user


@pytest_asyncio.fixture
async def intern_user(db_session: AsyncSession, tenant: Tenant) -> User:
    """Agent holding the Intern role (level 1, no permissions)."""
    user = await UserFactory.create(db_session, email="intern@example.com")
    await MembershipFactory.create(db_session, user, tenant, await role_named(db_session, tenant, "Intern"))
    return user


@pytest_asyncio.fixture
async def super_admin(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="root@example.com", user_type=UserType.SUPER_ADMIN.value)


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def agent_headers(agent_user: User) -> dict[str, str]:
    return auth_headers(agent_user)


@pytest.fixture
def intern_headers(intern_user: User) -> dict[str, str]:
    return auth_headers(intern_user)


@pytest.fixture
def super_admin_headers(super_admin: User) -> dict[str, str]:
    return auth_headers(super_admin)
