"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for database sessions, authentication, and test clients.
"""

from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import blyss.orm.models  # noqa: F401  (registers tables on Base.metadata)
from blyss.api.dependencies import get_db_session
from blyss.api.dependencies import token_service as app_token_service
from blyss.api.main import app
from blyss.api.websocket import NotificationGateway, gateway
from blyss.auth.token_service import TokenService
from blyss.database import Base
from blyss.repositories.notification_repository import NotificationRepository

# =============================
# Database Fixtures
# =============================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create test database engine.

    In-memory SQLite shared by every session of the test through a static pool,
    so the gateway and the REST routes see the same rows.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide database session for tests.

    Each test gets a fresh session that's rolled back after the test.
    """
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session: AsyncSession) -> NotificationRepository:
    """Repository over the test session."""
    return NotificationRepository(db_session)


# =============================
# Gateway Fixtures
# =============================


@pytest.fixture
def test_gateway(session_maker) -> NotificationGateway:
    """Fresh gateway reading from the test database."""
    return NotificationGateway(session_factory=session_maker)


@pytest.fixture
def app_gateway(session_maker):
    """
    The application's gateway singleton pointed at the test database.

    Connections and the session factory are reset afterwards.
    """
    gateway.active_connections.clear()
    gateway.session_factory = session_maker
    yield gateway
    gateway.active_connections.clear()
    gateway.session_factory = None


@pytest_asyncio.fixture(scope="function")
async def async_client(session_maker, app_gateway) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide async HTTP client for API testing.

    Overrides the database dependency to use test database.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# =============================
# Authentication Fixtures
# =============================


@pytest.fixture
def token_service() -> TokenService:
    """
    Provide the TokenService the application validates with.

    Tokens minted here pass both the REST dependency and the gateway `auth`.
    """
    return app_token_service


@pytest.fixture
def test_user_id() -> int:
    return 12


@pytest.fixture
def test_user_id_2() -> int:
    """Second user for isolation tests."""
    return 34


@pytest.fixture
def auth_token(token_service: TokenService, test_user_id: int) -> str:
    """Valid client access token for the test user."""
    return token_service.create_access_token(test_user_id, {"role": "client"})


@pytest.fixture
def auth_token_2(token_service: TokenService, test_user_id_2: int) -> str:
    return token_service.create_access_token(test_user_id_2, {"role": "client"})


@pytest.fixture
def pro_token(token_service: TokenService, test_user_id: int) -> str:
    return token_service.create_access_token(test_user_id, {"role": "pro"})


@pytest.fixture
def admin_token(token_service: TokenService) -> str:
    return token_service.create_access_token(1, {"role": "pro", "is_admin": True})


@pytest.fixture
def expired_token(token_service: TokenService, test_user_id: int) -> str:
    """Access token that expired a minute ago but is still refreshable."""
    return token_service.create_access_token(
        test_user_id, {"role": "client"}, expires_delta=timedelta(minutes=-1)
    )


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """
    Provide authentication headers with Bearer token.

    Example:
        ```python
        async def test_list(async_client, auth_headers):
            response = await async_client.get("/api/v1/notifications", headers=auth_headers)
            assert response.status_code == 200
        ```
    """
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def auth_headers_2(auth_token_2: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_token_2}"}


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}
