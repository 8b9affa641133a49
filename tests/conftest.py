"""
Pytest configuration and fixtures for testing.
"""
import fnmatch
import os
import tempfile

_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "partyfinder_test.db")

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB_PATH}")

import pytest
import pytest_asyncio
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from partyfinder.main import app
from partyfinder.db.session import Base, get_session
from partyfinder.core.config import settings
from partyfinder.core.security import hash_password, create_access_token
from partyfinder.cache.redis_client import cache
from partyfinder.client import PartyFinderClient
from partyfinder.db.models import CheckIn, Event, Friendship, User
from partyfinder.schemas import UserOut, Visibility


TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", os.environ["DATABASE_URL"])

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,
    echo=False,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Ames, IA
CAMPUS = (42.0267, -93.6465)


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the cache uses."""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, expire, value):
        self.store[key] = value
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def keys(self, pattern):
        return [key for key in self.store if fnmatch.fnmatch(key, pattern)]

    def exists(self, key):
        return int(key in self.store)

    def ping(self):
        return True

    def close(self):
        pass


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    """Replace the Redis connection with a per-test in-memory store."""
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_client", fake)
    return fake


@pytest.fixture(autouse=True)
def mock_password_hashing(monkeypatch):
    """Swap bcrypt for a cheap deterministic hash."""
    class MockPasswordContext:
        def hash(self, password: str) -> str:
            return f"$2b$12$mockedhash{password}"

        def verify(self, plain: str, hashed: str) -> bool:
            return hashed == f"$2b$12$mockedhash{plain}"

    from partyfinder.core import security
    monkeypatch.setattr(security, "pwd_context", MockPasswordContext())


@pytest.fixture(autouse=True)
def media_root(tmp_path, monkeypatch):
    root = tmp_path / "uploads"
    monkeypatch.setattr(settings, "MEDIA_ROOT", str(root))
    return root


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema and session for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client bound to the app and the test database.

    Each request gets its own session so that concurrent client calls
    (the viewer session gathers several listings) never share one.
    """
    async def override_get_session():
        async with TestSessionLocal() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_api_client(client: AsyncClient):
    """Factory for PartyFinderClient instances talking to the in-process app."""
    created = []

    def factory(token=None, user=None) -> PartyFinderClient:
        api = PartyFinderClient(base_url="http://test", token=token, transport=ASGITransport(app=app))
        if user is not None:
            api.user = UserOut.model_validate(user)
        created.append(api)
        return api

    yield factory

    for api in created:
        await api.aclose()


async def _make_user(db_session: AsyncSession, email: str, name: str) -> User:
    user = User(email=email, hashed_password=hash_password("party1234"), display_name=name)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def host_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "host@example.com", "Host")


@pytest_asyncio.fixture
async def guest_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "guest@example.com", "Guest")


@pytest_asyncio.fixture
async def friend_user(db_session: AsyncSession, host_user: User) -> User:
    """A user who is friends with ``host_user``."""
    friend = await _make_user(db_session, "friend@example.com", "Friend")
    db_session.add_all([
        Friendship(user_id=host_user.id, friend_id=friend.id),
        Friendship(user_id=friend.id, friend_id=host_user.id),
    ])
    await db_session.commit()
    return friend


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id)})


@pytest.fixture
def host_token(host_user: User) -> str:
    return token_for(host_user)


@pytest.fixture
def guest_token(guest_user: User) -> str:
    return token_for(guest_user)


@pytest.fixture
def friend_token(friend_user: User) -> str:
    return token_for(friend_user)


async def _make_event(db_session: AsyncSession, creator: User, **overrides) -> Event:
    now = datetime.now(timezone.utc)
    fields = dict(
        title="Friday Night Party",
        description="Bring friends",
        location_lat=CAMPUS[0],
        location_lng=CAMPUS[1],
        start_time=now - timedelta(minutes=10),
        end_time=now + timedelta(hours=3),
        visibility=Visibility.everyone,
        created_by=creator.id,
    )
    fields.update(overrides)
    event = Event(**fields)
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest.fixture
def make_event(db_session: AsyncSession):
    async def factory(creator: User, **overrides) -> Event:
        return await _make_event(db_session, creator, **overrides)
    return factory


@pytest_asyncio.fixture
async def live_event(db_session: AsyncSession, host_user: User) -> Event:
    """Started ten minutes ago, ends in three hours."""
    return await _make_event(db_session, host_user)


@pytest_asyncio.fixture
async def archived_event(db_session: AsyncSession, host_user: User) -> Event:
    now = datetime.now(timezone.utc)
    return await _make_event(
        db_session,
        host_user,
        title="Last Week's Party",
        start_time=now - timedelta(days=7),
        end_time=now - timedelta(days=6),
        is_archived=True,
        archived_at=now - timedelta(days=6),
    )


@pytest_asyncio.fixture
async def guest_checkin(db_session: AsyncSession, guest_user: User, archived_event: Event) -> CheckIn:
    """``guest_user`` attended ``archived_event``."""
    checkin = CheckIn(user_id=guest_user.id, event_id=archived_event.id)
    db_session.add(checkin)
    await db_session.commit()
    await db_session.refresh(checkin)
    return checkin
