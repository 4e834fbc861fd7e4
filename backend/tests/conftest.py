import os
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.models.base import Base
from app.providers import factory
from app.providers.delivery.mock_adapter import MockDeliveryChannel
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.onboarding_service import OnboardingService

# Default: in-memory SQLite shared by every session of a test (StaticPool
# keeps the single connection alive). Column types in app.models.base are
# portable, so TEST_DATABASE_URL may point at a PostgreSQL test database.
SQLITE_MEMORY_URL = "sqlite+aiosqlite://"


def get_test_database_url() -> str:
    return os.getenv("TEST_DATABASE_URL", SQLITE_MEMORY_URL)


TEST_DATABASE_URL = get_test_database_url()

# Test user ID (consistent across tests for predictable auth)
TEST_USER_ID = "user-00000000-0001"
USER_B_ID = "user-00000000-0099"

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow


def create_test_jwt(
    user_id: str = TEST_USER_ID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
    audience: str | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: Value of the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.
        audience: aud claim. Defaults to settings.auth_audience.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "aud": audience or settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh database with the full schema."""
    if not TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(TEST_DATABASE_URL, echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()
        return

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's implicit transaction handling breaks SAVEPOINT; emit BEGIN
    # ourselves so begin_nested() behaves like it does on PostgreSQL.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (same settings as production)."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session.

    Repository tests only. Service tests open their own sessions through
    ``session_factory``; do not hold this one open across service calls.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def mock_channel() -> Iterator[MockDeliveryChannel]:
    """Mock delivery channel injected into the factory singleton.

    Yields:
        MockDeliveryChannel recording every push.
    """
    mock = MockDeliveryChannel()
    factory._delivery_channel = mock
    yield mock
    factory.reset_providers()


@pytest.fixture
def dispatcher(
    session_factory: async_sessionmaker[AsyncSession],
    mock_channel: MockDeliveryChannel,
) -> NotificationDispatcher:
    return NotificationDispatcher(session_factory, mock_channel)


@pytest.fixture
def onboarding_service(
    session_factory: async_sessionmaker[AsyncSession],
    dispatcher: NotificationDispatcher,
) -> OnboardingService:
    return OnboardingService(session_factory, dispatcher)


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest.fixture
def auth_settings() -> Iterator[None]:
    """Enable JWT auth with the test secret, restoring settings afterwards."""
    original_auth_enabled = settings.auth_enabled
    original_auth_secret = settings.auth_secret
    settings.auth_enabled = True
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    yield
    settings.auth_enabled = original_auth_enabled
    settings.auth_secret = original_auth_secret


@pytest.fixture
def api_overrides(
    session_factory: async_sessionmaker[AsyncSession],
    mock_channel: MockDeliveryChannel,
) -> Iterator[None]:
    """Point the app's session factory and channel dependencies at test doubles."""
    from app.api.deps import get_channel
    from app.core.database import get_session_factory
    from app.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_channel] = lambda: mock_channel
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(
    api_overrides,  # noqa: ARG001 - installs dependency overrides
    auth_settings,  # noqa: ARG001 - enables JWT auth
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client authenticated as TEST_USER_ID via the auth cookie.

    Yields:
        Configured AsyncClient for making authenticated API requests.
    """
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies={settings.auth_cookie_name: create_test_jwt(TEST_USER_ID)},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def client_user_b(
    api_overrides,  # noqa: ARG001 - installs dependency overrides
    auth_settings,  # noqa: ARG001 - enables JWT auth
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as User B for cross-tenant tests."""
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies={settings.auth_cookie_name: create_test_jwt(USER_B_ID)},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def unauthenticated_client(
    api_overrides,  # noqa: ARG001 - installs dependency overrides
    auth_settings,  # noqa: ARG001 - enables JWT auth
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client without authentication (auth enabled, no cookie)."""
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_delivery_channel() -> Iterator[None]:
    """Drop the delivery channel singleton between tests."""
    factory.reset_providers()
    yield
    factory.reset_providers()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Security: Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from app.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled
