"""Shared test fixtures.

Everything runs against an in-memory SQLite database (aiosqlite) and an
in-memory key-value store, so no Postgres or Redis is needed.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import date, datetime, time, timezone

os.environ.setdefault("CATCHFEED_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CATCHFEED_LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from catchfeed.achievements.seed import seed_achievements
from catchfeed.cache import CacheEnvelope
from catchfeed.database import enable_sqlite_savepoints, get_session
from catchfeed.db.base import Base
from catchfeed.db.models import FishEntry, HarvestReport, User
from catchfeed.dependencies import get_feed_cache
from catchfeed.main import create_app


class InMemoryStore:
    """Async get/set/delete over a dict, with an optional outage switch."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("store unavailable")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._check()
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed


class FakeClock:
    """Controllable replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test setup and assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    """Session with the achievement catalog seeded."""
    await seed_achievements(db_session)
    return db_session


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(store: InMemoryStore, clock: FakeClock) -> CacheEnvelope:
    return CacheEnvelope(store, clock=clock)


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory: persist a user. Rewards members by default."""

    async def _make(
        first_name: str | None = "Jane",
        last_name: str | None = "Doe",
        rewards: bool = True,
        **fields,
    ) -> User:
        user = User(
            first_name=first_name,
            last_name=last_name,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            rewards_opted_in_at=datetime(2024, 1, 2, tzinfo=timezone.utc) if rewards else None,
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_report(db_session: AsyncSession):
    """Factory: persist a harvest report with aggregate counts and/or fish entries."""

    async def _make(
        user: User,
        harvest_date: date,
        created_at: datetime | None = None,
        fish_entries: list[dict] | None = None,
        **fields,
    ) -> HarvestReport:
        if created_at is None:
            created_at = datetime.combine(harvest_date, time(12, 0), tzinfo=timezone.utc)
        report = HarvestReport(
            user_id=user.id,
            harvest_date=harvest_date,
            created_at=created_at,
            fish_entries=[FishEntry(**entry) for entry in fish_entries or []],
            **fields,
        )
        db_session.add(report)
        await db_session.commit()
        return report

    return _make


@pytest_asyncio.fixture
async def client(session_factory, cache: CacheEnvelope) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, wired to the test database and cache."""
    app = create_app()

    async def _session_override() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_feed_cache] = lambda: cache

    async with session_factory() as session:
        await seed_achievements(session)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
