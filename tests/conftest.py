"""
Pytest configuration and fixtures for NitroAuth tests.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from nitroauth.auth.catalog import Role
from nitroauth.auth.dependencies import get_current_identity
from nitroauth.auth.tokens import TokenCodec, get_token_codec
from nitroauth.config import Settings
from nitroauth.core.http import ClientMetadata
from nitroauth.db.base import Base
from nitroauth.db.session import get_db, get_session_factory
from nitroauth.main import app
from nitroauth.models import User
from nitroauth.schemas.principal import Principal
from nitroauth.services.cache import ValidationCache, get_validation_cache
from nitroauth.services.principals import InMemoryPrincipalDirectory
from nitroauth.services.rate_limit import RateLimiter, get_rate_limiter, policies_from_settings

TEST_SECRET = "test-signing-secret"


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_codec() -> TokenCodec:
    """Codec with a fixed test secret."""
    return TokenCodec(secret=TEST_SECRET)


@pytest.fixture
def client_metadata() -> ClientMetadata:
    return ClientMetadata(ip_address="203.0.113.7", user_agent="pytest")


@pytest.fixture
def make_principal() -> Callable[..., Principal]:
    def _make(
        principal_id: str,
        role: Role | str = Role.GUEST,
        site_access: list[str] | None = None,
        email: str | None = None,
    ) -> Principal:
        return Principal(
            id=principal_id,
            email=email or f"{principal_id}@example.com",
            role=role,
            site_access=site_access or [],
        )

    return _make


@pytest.fixture
def directory() -> InMemoryPrincipalDirectory:
    return InMemoryPrincipalDirectory()


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a test database engine backed by a per-test SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def seed_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Insert and commit a user row."""

    async def _seed(
        user_id: str,
        role: str = "guest",
        site_access: list[str] | None = None,
        email: str | None = None,
    ) -> User:
        async with session_factory() as session:
            user = User(
                id=user_id,
                email=email or f"{user_id}@example.com",
                first_name="Test",
                last_name=user_id,
                role=role,
                site_access=site_access or [],
            )
            session.add(user)
            await session.commit()
        return user

    return _seed


@pytest.fixture
def identity() -> dict[str, Any]:
    """Requester identity returned by the overridden session dependency."""
    return {"user_id": "user_admin", "email": "user_admin@example.com", "session_id": None}


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(policies_from_settings(Settings()))


@pytest.fixture
def validation_cache() -> ValidationCache:
    return ValidationCache(ttl_seconds=300)


@pytest_asyncio.fixture(scope="function")
async def client(
    session_factory,
    identity,
    rate_limiter,
    validation_cache,
    token_codec,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_current_identity] = lambda: identity
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_validation_cache] = lambda: validation_cache
    app.dependency_overrides[get_token_codec] = lambda: token_codec

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
