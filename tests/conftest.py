"""Shared test fixtures for the DesignHub API test suite.

Uses an in-memory SQLite database (one shared connection via StaticPool)
and the in-process export cache. The ShapeDiver client is replaced by
`FakeRemoteClient`; secondary downloads go through an httpx
MockTransport answering from the `download_routes` dict.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from designhub.core.config import Settings
from designhub.core.context import AppContext
from designhub.db.models import Base
from designhub.exports.cache import MemoryArtifactCache
from designhub.exports.router import get_remote_factory
from designhub.main import create_app
from tests.fakes import FakeRemoteClient

TEST_TICKET = "test-ticket"
TEST_BASE_URL = "http://designhub.test"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        export_cache_backend="memory",
        shapediver_ticket=TEST_TICKET,
        public_base_url=TEST_BASE_URL,
        sentry_dsn="",
        debug=False,
    )


@pytest.fixture
async def async_engine():
    """Create a fresh async SQLite engine for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def download_routes() -> dict[str, httpx.Response]:
    """URL → canned response for export hrefs fetched by the resolver."""
    return {}


@pytest.fixture
async def http_client(download_routes) -> AsyncGenerator[httpx.AsyncClient, None]:
    def handler(request: httpx.Request) -> httpx.Response:
        return download_routes.get(str(request.url), httpx.Response(404))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        yield http


@pytest.fixture
def cache() -> MemoryArtifactCache:
    return MemoryArtifactCache()


@pytest.fixture
def fake_remote() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture
def context(settings, async_engine, http_client, cache) -> AppContext:
    return AppContext(
        settings=settings,
        engine=async_engine,
        session_factory=async_sessionmaker(
            async_engine, class_=AsyncSession, expire_on_commit=False
        ),
        http=http_client,
        cache=cache,
        store_available=True,
    )


@pytest.fixture
def app(context, fake_remote):
    """Create a FastAPI app wired to the test context.

    httpx's ASGITransport does not run the lifespan, so the context is
    attached to `app.state` directly. The SlowAPI in-memory buckets
    persist across requests in one process; reset them per test.
    """
    from designhub.core.limiter import limiter

    try:
        limiter.reset()
    except Exception:
        pass

    test_app = create_app()
    test_app.state.context = context
    test_app.dependency_overrides[get_remote_factory] = lambda: (lambda endpoint: fake_remote)
    return test_app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
