"""
Pytest Configuration and Shared Fixtures

Provides an in-memory database, a Redis double and an application client
for all test modules. No Redis server or PostgreSQL is required.
"""

import fnmatch
import time
from datetime import timedelta
from typing import Dict, Optional, Tuple
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from portfolio.auth import AuthConfig, UserRole, create_access_token
from portfolio.cache import CacheConfig, RedisCache
from portfolio.database import Blog, Database, Project, Skill
from portfolio.utils.config import Settings


# ============================================================================
# Redis Double
# ============================================================================

class FakeRedis:
    """
    In-memory stand-in for redis.asyncio.Redis.

    Implements the commands RedisCache issues, including TTL expiry and
    glob matching for SCAN.
    """

    def __init__(self):
        self.store: Dict[bytes, Tuple[bytes, Optional[float]]] = {}
        self.fail_with: Optional[Exception] = None
        self.calls = 0

    def _check(self):
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _key(key) -> bytes:
        return key.encode() if isinstance(key, str) else key

    def _live(self, key: bytes) -> Optional[bytes]:
        entry = self.store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self.store[key]
            return None
        return value

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self._live(self._key(key))

    async def set(self, key, value):
        self._check()
        self.store[self._key(key)] = (value, None)
        return True

    async def setex(self, key, seconds, value):
        self._check()
        if isinstance(seconds, timedelta):
            seconds = seconds.total_seconds()
        self.store[self._key(key)] = (value, time.monotonic() + seconds)
        return True

    async def delete(self, *keys):
        self._check()
        count = 0
        for key in keys:
            key = self._key(key)
            if self._live(key) is not None:
                del self.store[key]
                count += 1
        return count

    async def exists(self, key):
        self._check()
        return 1 if self._live(self._key(key)) is not None else 0

    async def ttl(self, key):
        self._check()
        key = self._key(key)
        if self._live(key) is None:
            return -2
        expires_at = self.store[key][1]
        if expires_at is None:
            return -1
        return int(expires_at - time.monotonic())

    async def scan_iter(self, match=None, count=None):
        self._check()
        pattern = self._key(match or "*").decode()
        for key in list(self.store):
            if self._live(key) is not None and fnmatch.fnmatchcase(key.decode(), pattern):
                yield key

    async def aclose(self):
        pass

    def keys_matching(self, pattern: str):
        return sorted(k.decode() for k in self.store if fnmatch.fnmatchcase(k.decode(), pattern))


# ============================================================================
# Infrastructure Fixtures
# ============================================================================

@pytest.fixture
def cache_config() -> CacheConfig:
    return CacheConfig(
        namespace="test",
        enabled=True,
        redis_url="redis://unused:6379/0",
        redis_password=None,
        compression_enabled=True,
        compression_threshold=1024,
        circuit_breaker_threshold=3,
        circuit_breaker_timeout=30,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(cache_config, fake_redis) -> RedisCache:
    return RedisCache(config=cache_config, client=fake_redis)


@pytest.fixture
def database():
    """Fresh in-memory SQLite database with all tables."""
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.new_session()
    yield session
    session.close()


# ============================================================================
# Auth Fixtures
# ============================================================================

@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(
        jwt_secret="super-secret-jwt-key-for-testing",
        jwt_algorithm="HS256",
        jwt_audience=None,
        auth_enabled=True,
    )


@pytest.fixture
def patched_auth(auth_config):
    """Route every auth lookup to the test config."""
    with patch("portfolio.auth.dependencies.get_auth_config", return_value=auth_config), \
            patch("portfolio.auth.jwt.get_auth_config", return_value=auth_config):
        yield auth_config


@pytest.fixture
def admin_headers(auth_config) -> Dict[str, str]:
    token = create_access_token(
        "11111111-1111-1111-1111-111111111111",
        email="admin@test.com",
        role=UserRole.ADMIN,
        config=auth_config,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(auth_config) -> Dict[str, str]:
    token = create_access_token(
        "22222222-2222-2222-2222-222222222222",
        email="user@test.com",
        role=UserRole.USER,
        config=auth_config,
    )
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        API_PREFIX="/api/v1",
        CORS_ORIGINS="http://localhost:3000",
        VIEW_RETENTION_DAYS=90,
    )


@pytest.fixture
def client(settings, database, cache, patched_auth):
    """TestClient running the full lifespan against the in-memory handles."""
    from api.main import create_app

    app = create_app(settings=settings, database=database, cache=cache)
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def project(database) -> Project:
    with database.session() as db:
        item = Project(
            title="Portfolio Site",
            description="This very site",
            tags=["web"],
            stack=["python", "fastapi"],
            featured=True,
        )
        db.add(item)
    return item


@pytest.fixture
def other_project(database) -> Project:
    with database.session() as db:
        item = Project(title="CLI Tool", description="A command line tool")
        db.add(item)
    return item


@pytest.fixture
def blog(database) -> Blog:
    with database.session() as db:
        item = Blog(
            title="Hello World",
            slug="hello-world",
            content="First post " * 50,
            excerpt="First post",
            tags=["intro"],
            published=True,
            read_time=1,
        )
        db.add(item)
    return item


@pytest.fixture
def draft_blog(database) -> Blog:
    with database.session() as db:
        item = Blog(
            title="Work In Progress",
            slug="work-in-progress",
            content="Not ready yet",
            published=False,
        )
        db.add(item)
    return item


@pytest.fixture
def skill(database) -> Skill:
    with database.session() as db:
        item = Skill(category="Backend", name="Python", level=90)
        db.add(item)
    return item
