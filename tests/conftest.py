from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from src.api.deps import get_db_session, get_mailer, get_reset_registry
from src.api.main import app
from src.domain.services.reset_codes import ResetCodeRegistry
from src.infrastructure.db.base import Base
from src.infrastructure.reset_store import InMemoryResetCodeStore
from src.libs.resend_client import ResendEmailResponse


@pytest.fixture()
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Provide a database session for tests that need direct DB access."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def reset_store() -> InMemoryResetCodeStore:
    return InMemoryResetCodeStore()


@pytest.fixture()
def mailer() -> AsyncMock:
    """Stand-in for the Resend client; records every send."""
    client = AsyncMock()
    client.send_email.return_value = ResendEmailResponse(id="email-test-1")
    return client


@pytest.fixture()
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    reset_store: InMemoryResetCodeStore,
    mailer: AsyncMock,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the in-memory database and reset store."""

    async def override_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_reset_registry] = lambda: ResetCodeRegistry(reset_store)
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
