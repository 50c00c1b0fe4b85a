"""
Test infrastructure for the blog API.

Strategy
--------
- SQLite in-memory via aiosqlite, shared through StaticPool so every
  session sees the same database.
- The app's get_db dependency is overridden with the test session factory.
- Tables are created before and dropped after every test.
- Redis is disabled (``cache._redis = None``); the CacheManager treats that
  as "always miss, never store". Tests that exercise caching request the
  ``redis_cache`` fixture, which plugs in an in-memory stand-in.
- Uploaded images go to a per-test temporary directory.
"""
import fnmatch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog.cache import cache
from blog.database import Base, get_db, transaction
from blog.images import ImageStore, get_image_store
from blog.main import app
from blog.middleware import install_query_counter

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with transaction(async_session_test) as session:
        yield session


app.dependency_overrides[get_db] = override_get_db


class RecordingImageStore:
    """Stand-in for ImageStore that remembers every delete request."""

    def __init__(self, fail: bool = False) -> None:
        self.deleted: list = []
        self.fail = fail

    def delete_image(self, filename):
        self.deleted.append(filename)
        if self.fail:
            raise PermissionError(f"cannot remove {filename}")
        return filename is not None


class InMemoryRedis:
    """The slice of the redis.asyncio client that CacheManager uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def scan_iter(self, match="*"):
        for key in [k for k in self.store if fnmatch.fnmatchcase(k, match)]:
            yield key

    async def delete(self, *keys):
        return sum(self.store.pop(key, None) is not None for key in keys)

    async def aclose(self):
        self.store.clear()


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Fresh tables for every test; cache disabled."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest.fixture
def image_store(tmp_path) -> ImageStore:
    return ImageStore(tmp_path / "uploads", allowed_extensions=["jpg", "jpeg", "png"])


@pytest.fixture
def redis_cache():
    """Enable the cache against an in-memory Redis for one test."""
    fake = InMemoryRedis()
    cache._redis = fake
    yield fake
    cache._redis = None


@pytest.fixture
def recording_store() -> RecordingImageStore:
    return RecordingImageStore()


@pytest.fixture
def failing_store() -> RecordingImageStore:
    return RecordingImageStore(fail=True)


@pytest_asyncio.fixture
async def async_client(image_store) -> AsyncClient:
    app.dependency_overrides[get_image_store] = lambda: image_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_image_store, None)
