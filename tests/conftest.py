"""
Shared test fixtures for the CovidWatch test suite.

Each test gets its own app, in-memory aiosqlite database, session store
and rate-limit storage, the last two driven by one fake clock.
"""

import os
import sys
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
# Cheap bcrypt so the suite stays fast
os.environ["BCRYPT_ROUNDS"] = "4"

import limits.aio.storage.memory as limits_memory
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from limits.aio.storage import MemoryStorage
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from covidwatch.api.deps import get_db
from covidwatch.core.config import settings
from covidwatch.core.kv import MemoryStore
from covidwatch.core.rate_limit import RateLimiter, limits_from_settings
from covidwatch.core.security import get_password_hash
from covidwatch.db.base import Base
from covidwatch.main import create_app
from covidwatch.models.user import User

DEFAULT_PASSWORD = "Abcdef12"


class FakeClock:
    """Monotonic clock the tests can move forward by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def limit_storage(clock: FakeClock, monkeypatch) -> MemoryStorage:
    """limits' in-memory counter storage, reading the fake clock."""
    monkeypatch.setattr(limits_memory, "time", SimpleNamespace(time=clock))
    return MemoryStorage()


@pytest.fixture
def rate_limiter(limit_storage: MemoryStorage, clock: FakeClock) -> RateLimiter:
    return RateLimiter(limit_storage, limits_from_settings(settings), clock=clock)


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create all tables on a private in-memory database and drop it after."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def app(
    session_factory: async_sessionmaker, kv_store: MemoryStore, rate_limiter: RateLimiter
) -> FastAPI:
    application = create_app(store=kv_store, rate_limiter=rate_limiter)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = _override_get_db
    return application


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def signup_payload() -> dict:
    return {
        "user": "alice_01",
        "pass": DEFAULT_PASSWORD,
        "email": "a@b.com",
        "given_name": "Alice",
        "family_name": "Lee",
        "type": "user",
    }


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Insert a user directly, bypassing signup (e.g. admins, legacy hashes)."""

    async def _make_user(
        username: str,
        role: str = "user",
        password: str = DEFAULT_PASSWORD,
        password_hash: str | None = None,
    ) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            given_name="Test",
            family_name="User",
            password_hash=password_hash or get_password_hash(password),
            role=role,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def login(async_client: AsyncClient):
    async def _login(username: str, password: str = DEFAULT_PASSWORD):
        return await async_client.post(
            "/users/login", json={"user": username, "pass": password}
        )

    return _login


@pytest.fixture
async def user_client(async_client: AsyncClient, make_user, login) -> AsyncClient:
    """A client holding a session for the plain user ``bob_user``."""
    await make_user("bob_user")
    resp = await login("bob_user")
    assert resp.status_code == 200
    return async_client
