"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from agencyos.main import app
from agencyos.models.base import Base
from agencyos.db.session import get_db
from agencyos.middleware import rate_limiter as rate_limiter_module
from agencyos.services import email as email_module


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster. StaticPool keeps one in-memory database shared by
# the test session and every request session.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state,
    preventing test pollution and ensuring test isolation.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the test engine (scheduler jobs, requests)."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    WHY: Tests build fixtures and inspect results through this session.
    Factories commit, so rows are visible to the request sessions.

    Yields:
        AsyncSession: Database session for the test
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: Each request gets its own session that commits on success and
    rolls back on error, exactly like get_db in production. Tests read
    results back with ``await db_session.refresh(obj)`` or a fresh query.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def in_memory_rate_limiter():
    """
    Give every test a fresh in-memory rate limiter.

    WHY: Counters must not leak between tests, and tests must never need a
    Redis server. Budgets stay at their configured defaults so the 429 path
    can be exercised end to end.
    """
    limiter = rate_limiter_module.RateLimiter(rate_limiter_module.InMemoryCounterStore())
    rate_limiter_module.set_rate_limiter(limiter)
    yield limiter
    rate_limiter_module.set_rate_limiter(None)


@pytest.fixture(autouse=True)
def use_mock_email_provider(monkeypatch):
    """
    Use mock email provider for all tests.

    WHY: Tests should not send real emails. The mock provider tracks sent
    emails in ``MockEmailProvider.sent_emails`` for verification.
    """
    from agencyos.core import config

    monkeypatch.setattr(config.settings, "RESEND_API_KEY", None)
    email_module.MockEmailProvider.clear_sent_emails()
    email_module.set_email_service(
        email_module.EmailService(provider=email_module.MockEmailProvider())
    )

    yield

    email_module.set_email_service(None)
    email_module.MockEmailProvider.clear_sent_emails()
