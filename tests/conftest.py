"""Shared fixtures: in-memory database, product factories and an in-memory cache."""

import fnmatch
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wishes_tracer.cache import ProductCache
from wishes_tracer.db.models import Base, TrackedProduct

# A single shared connection keeps the in-memory database alive across sessions
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed_product(session_factory):
    """Insert a tracked product and return it (detached)."""

    async def _seed(
        url: str = "https://www.amazon.com.mx/dp/B0TEST0001",
        name: str = "Audífonos inalámbricos",
        vendor: str = "Amazon",
        price: str = "100",
        active: bool = True,
    ) -> TrackedProduct:
        product = TrackedProduct.create(name, url, vendor)
        product.current_price = Decimal(price)
        product.is_available = True
        product.is_active = active
        async with session_factory() as session:
            session.add(product)
            await session.commit()
        return product

    return _seed


class FakeRedis:
    """In-memory stand-in for the handful of redis.asyncio calls the cache makes."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.closed = False

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def product_cache(fake_redis):
    cache = ProductCache("redis://localhost:6379/0", enabled=True)
    cache._redis = fake_redis
    return cache
