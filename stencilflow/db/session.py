"""Database session configuration."""

from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stencilflow.core.config import settings


def _engine_options(database_uri: str) -> dict[str, Any]:
    """Pool and connection options for the configured backend.

    SQLite (local runs and tests) gets a single shared connection. Postgres gets a
    bounded pool that fails fast when exhausted instead of queueing forever.
    """
    if database_uri.startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    return {
        "pool_size": 10,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,  # Recycle connections after 5 minutes
        "pool_timeout": 30,
        "isolation_level": "READ COMMITTED",
        "connect_args": {
            "server_settings": {
                "idle_in_transaction_session_timeout": "60000",  # Kill idle transactions after 60s
            },
            "command_timeout": 60,
        },
    }


async_engine = create_async_engine(
    settings.SQLALCHEMY_ASYNC_DATABASE_URI,
    **_engine_options(settings.SQLALCHEMY_ASYNC_DATABASE_URI),
)

AsyncSessionLocal = async_sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=async_engine
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session to be used in dependency injection.

    Yields:
    ------
        AsyncSession: An async database session

    """
    async with AsyncSessionLocal() as db:
        try:
            yield db
        finally:
            await db.close()
