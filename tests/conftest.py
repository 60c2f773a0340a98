"""Common test fixtures and configuration for pytest.

Tests run against an in-memory SQLite database. The environment is set before
anything from stencilflow is imported, since settings are read at import time.
"""

import os

os.environ["SQLALCHEMY_ASYNC_DATABASE_URI"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_ENABLED"] = "false"
os.environ["STRIPE_ENABLED"] = "false"
os.environ["LOCAL_DEVELOPMENT"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ.pop("REDIS_HOST", None)
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("ADMIN_EMAILS", None)

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from stencilflow.models import Base  # noqa: E402

# Import all fixtures so they are automatically available for all tests
from tests.fixtures.api import api_client, rate_limiter  # noqa: E402, F401
from tests.fixtures.common import (  # noqa: E402, F401
    member_user,
    outsider_user,
    owner_user,
    studio_organization,
)


@pytest.fixture
async def db_engine():
    """Create a fresh in-memory database for each test function."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for a test."""
    async with session_factory() as session:
        yield session
