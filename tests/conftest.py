"""Shared pytest fixtures: in-memory stores, a settable clock and an API client."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shortlinks.cache import RecordCache, cache_ttl_seconds
from shortlinks.config import Settings, get_settings
from shortlinks.database import Base, build_session_factory, init_db
from shortlinks.dependencies import get_lifecycle_manager
from shortlinks.exceptions import DuplicateKeyError, StoreUnavailableError
from shortlinks.lifecycle import LinkLifecycleManager
from shortlinks.main import app
from shortlinks.schemas import LinkRecord
from shortlinks.store import RecordStore, SQLRecordStore

T0 = 1_000_000


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class InMemoryRecordStore(RecordStore):
    """RecordStore fake with the same key and expiry semantics as the SQL store."""

    def __init__(self):
        self.rows: dict[str, LinkRecord] = {}
        self.available = True
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if not self.available:
            raise StoreUnavailableError(f"Durable store {operation} failed")

    async def insert(self, record: LinkRecord) -> None:
        self._check("insert")
        if record.short_path in self.rows:
            raise DuplicateKeyError(f"Short path '{record.short_path}' already exists")
        self.rows[record.short_path] = record

    async def find_by_short_path(self, short_path: str) -> LinkRecord | None:
        self._check("find_by_short_path")
        return self.rows.get(short_path)

    async def find_live_by_original_url(self, original_url: str, now: int) -> LinkRecord | None:
        self._check("find_live_by_original_url")
        for record in self.rows.values():
            if record.original_url == original_url and record.is_live(now):
                return record
        return None

    async def delete(self, short_path: str) -> None:
        self._check("delete")
        self.rows.pop(short_path, None)

    async def delete_all_expired(self, now: int) -> int:
        self._check("delete_all_expired")
        expired = [path for path, r in self.rows.items() if r.expires_at is not None and r.expires_at <= now]
        for path in expired:
            del self.rows[path]
        return len(expired)

    async def purge(self) -> int:
        self._check("purge")
        removed = len(self.rows)
        self.rows.clear()
        return removed

    async def ping(self) -> None:
        self._check("ping")


class InMemoryRecordCache(RecordCache):
    """RecordCache fake that remembers the TTL of every write."""

    def __init__(self):
        self.entries: dict[str, LinkRecord] = {}
        self.ttls: dict[str, int | None] = {}
        self.available = True

    def _check(self, operation: str) -> None:
        if not self.available:
            raise StoreUnavailableError(f"Cache {operation} failed")

    async def put(self, record: LinkRecord, now: int) -> None:
        self._check("put")
        self.entries[record.short_path] = record
        self.ttls[record.short_path] = cache_ttl_seconds(record, now)

    async def get(self, short_path: str) -> LinkRecord | None:
        self._check("get")
        return self.entries.get(short_path)

    async def delete(self, short_path: str) -> None:
        self._check("delete")
        self.entries.pop(short_path, None)
        self.ttls.pop(short_path, None)

    async def clear(self) -> int:
        self._check("clear")
        removed = len(self.entries)
        self.entries.clear()
        self.ttls.clear()
        return removed

    async def ping(self) -> None:
        self._check("ping")


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def cache() -> InMemoryRecordCache:
    return InMemoryRecordCache()


@pytest.fixture
def lifecycle(store, cache, clock) -> LinkLifecycleManager:
    return LinkLifecycleManager(store, cache, clock=clock)


@pytest_asyncio.fixture(scope="function")
async def sql_session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield build_session_factory(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def sql_store(sql_session_factory) -> SQLRecordStore:
    return SQLRecordStore(sql_session_factory)


@pytest_asyncio.fixture(scope="function")
async def client(lifecycle: LinkLifecycleManager) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_lifecycle_manager] = lambda: lifecycle

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
