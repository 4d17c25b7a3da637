"""
Pytest configuration and shared fixtures.

Tests run against an in-memory SQLite database (aiosqlite, foreign keys on)
and an in-process fake Redis, so no external services are needed.
"""

import os

# Settings are read at import time; these must be set before aloha is imported.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SYNC_PERMISSIONS_ON_STARTUP", "false")
# Cheap hashing keeps the suite fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_PARALLELISM", "1")

from collections.abc import AsyncGenerator, Awaitable, Callable, Iterable  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
from fakeredis import FakeAsyncRedis  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import aloha.models  # noqa: E402, F401  (registers every table on SQLModel.metadata)
from aloha.core.database import get_db  # noqa: E402
from aloha.core.redis import get_redis  # noqa: E402
from aloha.main import app as main_app  # noqa: E402
from aloha.models.permissions import Permissions  # noqa: E402
from aloha.models.user import Users  # noqa: E402
from aloha.services import credentials, permission_graph  # noqa: E402
from aloha.services.sessions import SessionManager  # noqa: E402

TEST_PASSWORD = "TestPassword123!"


@pytest.fixture(scope="function")
async def engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single connection alive, otherwise every new
    connection would see an empty database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture(scope="function")
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def redis_client() -> AsyncGenerator[FakeAsyncRedis, None]:
    """In-process Redis for the session store."""
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def sessions(redis_client: FakeAsyncRedis) -> SessionManager:
    return SessionManager(redis_client)


@pytest.fixture(scope="function")
def app(db_session: AsyncSession, redis_client: FakeAsyncRedis) -> FastAPI:
    """
    FastAPI app bound to the test database session and fake Redis.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_redis() -> AsyncGenerator[FakeAsyncRedis, None]:
        yield redis_client

    main_app.dependency_overrides[get_db] = override_get_db
    main_app.dependency_overrides[get_redis] = override_get_redis

    yield main_app

    main_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async HTTP client for testing API endpoints.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/tweets")
            assert response.status_code == 200
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# =============================================================================
# Test Data Fixtures
# =============================================================================


async def _permission_id(db: AsyncSession, name: str) -> UUID:
    """Look up a permission by name, creating it if needed."""
    result = await db.execute(select(Permissions).where(Permissions.name == name))
    permission = result.scalar_one_or_none()
    if permission is None:
        permission = await permission_graph.create_permission(db, name)
    return permission.id


@pytest.fixture
def permission_id(db_session: AsyncSession) -> Callable[[str], Awaitable[UUID]]:
    """
    Usage:
        perm_id = await permission_id("post_tweet")
    """

    async def _get(name: str) -> UUID:
        return await _permission_id(db_session, name)

    return _get


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[Users]]:
    """
    Factory for users with optional direct permission grants.

    Usage:
        admin = await make_user("admin", permissions=["user_manage"])
    """

    async def _make(
        username: str,
        password: str = TEST_PASSWORD,
        permissions: Iterable[str] = (),
        group_id: UUID | None = None,
    ) -> Users:
        user = await credentials.create_user(db_session, username, password, group_id)
        for name in permissions:
            await permission_graph.grant_to_user(
                db_session, user.id, await _permission_id(db_session, name)
            )
        return user

    return _make


@pytest.fixture
def login(client: AsyncClient) -> Callable[..., Awaitable[dict[str, str]]]:
    """
    Log in through the API and return bearer headers for the new session.

    The cookie jar is cleared afterwards so requests only carry the session
    the test passes explicitly.
    """

    async def _login(username: str, password: str = TEST_PASSWORD) -> dict[str, str]:
        response = await client.post(
            "/api/v1/auth/login", json={"username": username, "password": password}
        )
        assert response.status_code == 200, response.text
        token = response.cookies["session_id"]
        client.cookies.clear()
        return {"Authorization": f"Bearer {token}"}

    return _login
