"""Async database engine and session management.

Configures the SQLAlchemy async engine with connection pooling and provides
dependency injection for the session factory used by services that own
their own transaction scope.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency that provides the session factory.

    Services that open a session per operation (onboarding, notifications)
    take the factory instead of a request-scoped session so each operation
    controls its own transaction boundary.
    """
    return async_session_factory
