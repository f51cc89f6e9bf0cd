"""
Pytest configuration for TaskHub backend tests.

Every test gets a fresh SQLite database, an in-memory Redis stand-in and a
recording fan-out transport. The app runs in-process over httpx.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import AsyncGenerator

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taskhub.core.database import get_db, get_session_factory
from taskhub.core.dependencies import get_fanout_router, get_redis
from taskhub.core.security import hash_password
from taskhub.main import app
from taskhub.models import Base, User
from taskhub.services.fanout import FanoutRouter
from tests.fakes import FakeRedis, RecordingTransport
from tests.helpers import PASSWORD

_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
async def client(session_factory, fake_redis, transport) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_fanout_router] = lambda: FanoutRouter(transport)
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly and return it; avoids a bcrypt round per test user."""
    counter = {"n": 0}

    async def _make(name: str | None = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        async with session_factory() as session:
            user = User(
                email=f"user{n}@example.com",
                name=name or f"User {n}",
                password_hash=_PASSWORD_HASH,
            )
            session.add(user)
            await session.commit()
            return user

    return _make

