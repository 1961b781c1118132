"""
Tests for the caching layer.

These tests verify:
- Redis cache operations (get, set, delete, delete_pattern)
- Compression (LZ4)
- Graceful degradation when Redis fails
- Circuit breaker behavior
- Event-driven invalidation

All tests run against the in-memory Redis double from conftest.
"""

import fnmatch
import time
from datetime import datetime
from uuid import UUID

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from portfolio.cache import CacheEvent, CacheInvalidator, CacheTTL, RedisCache, keys
from portfolio.cache.compression import (
    CacheCompressor,
    MARKER_LZ4,
    MARKER_UNCOMPRESSED,
    deserialize_value,
    serialize_value,
)
from portfolio.cache.config import CacheConfig, get_cache_config
from portfolio.cache.redis_cache import CircuitBreaker


# =============================================================================
# COMPRESSION TESTS
# =============================================================================

class TestCompression:
    """Test compression utilities."""

    def test_serialize_deserialize_envelope(self):
        """Test serialization of a response envelope."""
        data = {"success": True, "data": [{"id": "a", "views": 3}], "pagination": {"page": 1}}
        assert deserialize_value(serialize_value(data)) == data

    def test_serialize_datetime_and_uuid(self):
        """Datetimes and UUIDs serialize to their string forms."""
        data = {
            "timestamp": datetime(2024, 1, 15, 10, 30, 0),
            "id": UUID("12345678-1234-5678-1234-567812345678"),
        }
        result = deserialize_value(serialize_value(data))
        assert result["timestamp"] == "2024-01-15T10:30:00"
        assert result["id"] == "12345678-1234-5678-1234-567812345678"

    def test_compressor_small_data_not_compressed(self):
        """Small data should not be compressed."""
        compressor = CacheCompressor(enabled=True, threshold=1024)
        compressed, stats = compressor.compress(b"hello world")

        assert compressed[0:1] == MARKER_UNCOMPRESSED
        assert stats is None
        assert compressor.decompress(compressed) == b"hello world"

    def test_compressor_large_data_compressed(self):
        """Large data should be compressed."""
        compressor = CacheCompressor(enabled=True, threshold=100)
        large_data = b"x" * 10000

        compressed, stats = compressor.compress(large_data)

        assert compressed[0:1] == MARKER_LZ4
        assert stats is not None
        assert stats.compression_ratio > 1
        assert stats.savings_percent > 50
        assert compressor.decompress(compressed) == large_data

    def test_compressor_disabled(self):
        compressor = CacheCompressor(enabled=False, threshold=10)
        compressed, stats = compressor.compress(b"y" * 5000)
        assert compressed[0:1] == MARKER_UNCOMPRESSED
        assert stats is None

    def test_decompress_unknown_marker(self):
        with pytest.raises(ValueError):
            CacheCompressor().decompress(b"\x07garbage")


# =============================================================================
# CACHE CONFIG TESTS
# =============================================================================

class TestCacheConfig:
    """Test cache configuration."""

    def test_config_defaults(self, monkeypatch):
        """Test default configuration values."""
        for var in ("CACHE_ENABLED", "CACHE_NAMESPACE", "CACHE_COMPRESSION_ENABLED"):
            monkeypatch.delenv(var, raising=False)
        config = CacheConfig()
        assert config.enabled is True
        assert config.namespace == "cache"
        assert config.compression_enabled is True
        assert config.redis_max_connections == 50

    def test_config_from_env(self, monkeypatch):
        """Test configuration from environment variables."""
        monkeypatch.setenv("CACHE_ENABLED", "false")
        get_cache_config.cache_clear()
        try:
            assert get_cache_config().enabled is False
        finally:
            get_cache_config.cache_clear()

    def test_ttl_values(self):
        assert CacheTTL.ANALYTICS_SUMMARY == 300
        assert CacheTTL.CONTENT_LIST == 600
        assert CacheTTL.CONTENT_DETAIL == 600
        assert CacheTTL.SKILLS == 1800


# =============================================================================
# KEY CONSTRUCTION TESTS
# =============================================================================

class TestCacheKeys:
    """Every parameter that shapes a response appears in its key."""

    def test_list_keys_encode_filters(self):
        assert keys.project_list_key(1, 10, False) == "projects:list:1:10:false"
        assert keys.project_list_key(1, 10, True) == "projects:list:1:10:true"
        assert keys.blog_list_key(2, 5, True) == "blogs:list:2:5:true"

    def test_item_keys(self):
        assert keys.blog_key("hello-world") == "blog:hello-world"
        assert keys.skills_list_key("Backend") == "skills:list:category:Backend"

    def test_grouped_skills_key_unreachable_from_a_category(self):
        assert keys.skills_list_key() == "skills:list:grouped"
        assert keys.skills_list_key("") == "skills:list:grouped"
        for category in ("all", "grouped", "Backend"):
            assert keys.skills_list_key(category) != keys.skills_list_key()

    def test_namespace_pattern_does_not_match_items(self):
        """Clearing blog lists must leave single-post keys to explicit deletes."""
        pattern = keys.list_pattern(keys.BLOGS_NAMESPACE)
        assert fnmatch.fnmatchcase(keys.blog_list_key(1, 10, True), pattern)
        assert not fnmatch.fnmatchcase(keys.blog_key("x"), pattern)


# =============================================================================
# REDIS CACHE TESTS
# =============================================================================

@pytest.mark.asyncio
class TestRedisCache:
    """Cache operations against the in-memory Redis double."""

    async def test_set_and_get(self, cache):
        """Test basic set and get."""
        value = {"success": True, "data": {"hello": "world", "number": 42}}

        assert await cache.set("test:basic", value, 60) is True
        assert await cache.get("test:basic") == value

    async def test_keys_are_namespaced(self, cache, fake_redis):
        await cache.set("projects:list:1:10:false", {"a": 1}, 60)
        assert fake_redis.keys_matching("*") == ["test:projects:list:1:10:false"]

    async def test_get_nonexistent(self, cache):
        """Test getting nonexistent key."""
        assert await cache.get("test:nonexistent") is None

    async def test_ttl_applied(self, cache):
        await cache.set("test:ttl", "value", 300)
        remaining = await cache.ttl("test:ttl")
        assert 0 < remaining <= 300

    async def test_expired_entry_is_a_miss(self, cache, fake_redis):
        await cache.set("test:expiring", "value", 60)
        stored, _ = fake_redis.store[b"test:test:expiring"]
        fake_redis.store[b"test:test:expiring"] = (stored, time.monotonic() - 1)

        assert await cache.get("test:expiring") is None

    async def test_large_value_round_trip(self, cache, fake_redis):
        """Values above the threshold are stored compressed and read back intact."""
        value = {"data": [{"title": "post", "body": "lorem ipsum " * 50} for _ in range(20)]}
        await cache.set("blogs:list:1:10:true", value, 60)

        raw, _ = fake_redis.store[b"test:blogs:list:1:10:true"]
        assert raw[0:1] == MARKER_LZ4
        assert await cache.get("blogs:list:1:10:true") == value
        assert cache.get_stats()["bytes_saved_compression"] > 0

    async def test_delete(self, cache):
        """Test deletion."""
        await cache.set("test:delete", "value", 60)
        assert await cache.exists("test:delete")

        assert await cache.delete("test:delete") is True
        assert not await cache.exists("test:delete")
        assert await cache.delete("test:delete") is False

    async def test_delete_pattern(self, cache):
        """Test pattern deletion."""
        for i in range(5):
            await cache.set(f"projects:list:{i}:10:false", f"value{i}", 60)
        await cache.set("project:abc", "keep", 60)

        deleted = await cache.delete_pattern("projects:*")

        assert deleted == 5
        assert await cache.get("project:abc") == "keep"

    async def test_delete_pattern_no_matches(self, cache):
        assert await cache.delete_pattern("nothing:*") == 0

    async def test_stats(self, cache):
        """Test statistics tracking."""
        await cache.set("test:stats:1", "value", 60)
        await cache.get("test:stats:1")
        await cache.get("test:stats:nonexistent")

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate_percent"] == 50.0
        assert stats["circuit_breaker_open"] is False

    async def test_health_check(self, cache):
        health = await cache.health_check()
        assert health["healthy"] is True
        assert health["status"] == "connected"

    async def test_disabled_cache_is_inert(self, cache_config, fake_redis):
        cache_config.enabled = False
        cache = RedisCache(config=cache_config, client=fake_redis)

        assert await cache.set("k", "v", 60) is False
        assert await cache.get("k") is None
        assert await cache.delete_pattern("*") == 0
        assert fake_redis.calls == 0

    async def test_close_leaves_injected_client_open(self, cache, fake_redis):
        await cache.initialize()
        await cache.close()
        assert cache.is_initialized is False
        # Still usable: the next call lazily re-initializes
        await cache.set("after:close", 1, 60)
        assert await cache.get("after:close") == 1


# =============================================================================
# DEGRADATION TESTS
# =============================================================================

@pytest.mark.asyncio
class TestGracefulDegradation:
    """A Redis failure is a miss, never an exception."""

    async def test_get_returns_none_on_error(self, cache, fake_redis):
        fake_redis.fail_with = RedisConnectionError("down")
        assert await cache.get("anything") is None
        assert cache.get_stats()["errors"] == 1

    async def test_set_returns_false_on_error(self, cache, fake_redis):
        fake_redis.fail_with = RedisConnectionError("down")
        assert await cache.set("anything", {"a": 1}, 60) is False

    async def test_delete_and_pattern_swallow_errors(self, cache, fake_redis):
        fake_redis.fail_with = RedisConnectionError("down")
        assert await cache.delete("anything") is False
        assert await cache.delete_pattern("projects:*") == 0

    async def test_corrupt_entry_is_a_miss(self, cache, fake_redis):
        fake_redis.store[b"test:corrupt"] = (b"\x09not-a-valid-entry", None)
        assert await cache.get("corrupt") is None

    async def test_unhealthy_when_down(self, cache, fake_redis):
        fake_redis.fail_with = RedisConnectionError("down")
        health = await cache.health_check()
        assert health["healthy"] is False
        assert health["status"] == "error"

    async def test_initialize_raises_when_unreachable(self, cache, fake_redis):
        fake_redis.fail_with = RedisConnectionError("down")
        with pytest.raises(RedisConnectionError):
            await cache.initialize()
        assert cache.is_initialized is False


# =============================================================================
# CIRCUIT BREAKER TESTS
# =============================================================================

@pytest.mark.asyncio
class TestCircuitBreaker:
    """Test the circuit breaker in isolation and inside the cache."""

    async def test_opens_after_threshold(self):
        breaker = CircuitBreaker(threshold=3, timeout=30)
        for _ in range(3):
            assert await breaker.is_available()
            await breaker.record_failure()

        assert breaker.state.is_open
        assert not await breaker.is_available()

    async def test_success_resets_failures(self):
        breaker = CircuitBreaker(threshold=3, timeout=30)
        await breaker.record_failure()
        await breaker.record_failure()
        await breaker.record_success()
        await breaker.record_failure()
        assert not breaker.state.is_open

    async def test_recovers_after_timeout(self):
        breaker = CircuitBreaker(threshold=1, timeout=30)
        await breaker.record_failure()
        breaker.state.opened_at = time.time() - 31

        assert await breaker.is_available()
        assert breaker.state.failures == 0

    async def test_open_breaker_skips_redis(self, cache, fake_redis):
        """Once open, calls fail fast without touching Redis."""
        fake_redis.fail_with = RedisConnectionError("down")
        for _ in range(3):
            await cache.get("k")
        assert cache.get_stats()["circuit_breaker_open"] is True

        calls_before = fake_redis.calls
        fake_redis.fail_with = None
        assert await cache.get("k") is None
        assert fake_redis.calls == calls_before


# =============================================================================
# INVALIDATION TESTS
# =============================================================================

@pytest.mark.asyncio
class TestCacheInvalidator:
    """Write events clear exactly the keys they make stale."""

    @pytest.fixture
    async def populated(self, cache):
        entries = [
            "projects:list:1:10:false",
            "projects:list:1:10:true",
            "project:p1",
            "project:p2",
            "blogs:list:1:10:true",
            "blog:old-slug",
            "blog:new-slug",
            "blog:untouched",
            "skills:list:grouped",
            "skills:list:category:Backend",
            keys.ANALYTICS_SUMMARY,
        ]
        for key in entries:
            await cache.set(key, {"key": key}, 600)
        return cache

    async def test_project_event(self, populated):
        result = await CacheInvalidator(populated).handle_event(
            CacheEvent.PROJECT_UPDATED, entity_id="p1"
        )

        assert result.success
        assert result.keys_invalidated == 3
        assert await populated.get("projects:list:1:10:true") is None
        assert await populated.get("project:p1") is None
        assert await populated.get("project:p2") is not None
        assert await populated.get("blogs:list:1:10:true") is not None

    async def test_blog_rename_clears_both_slugs(self, populated):
        result = await CacheInvalidator(populated).handle_event(
            CacheEvent.BLOG_UPDATED, slug="new-slug", previous_slug="old-slug"
        )

        assert result.keys_invalidated == 3
        assert await populated.get("blog:old-slug") is None
        assert await populated.get("blog:new-slug") is None
        assert await populated.get("blog:untouched") is not None
        assert await populated.get("blogs:list:1:10:true") is None

    async def test_skill_event(self, populated):
        result = await CacheInvalidator(populated).handle_event(CacheEvent.SKILL_CREATED)
        assert result.keys_invalidated == 2
        assert await populated.get("skills:list:category:Backend") is None
        assert await populated.get("projects:list:1:10:false") is not None

    async def test_views_purged_clears_summary_only(self, populated):
        result = await CacheInvalidator(populated).handle_event(CacheEvent.VIEWS_PURGED)
        assert result.keys_invalidated == 1
        assert await populated.get(keys.ANALYTICS_SUMMARY) is None
        assert await populated.get("project:p1") is not None

    async def test_invalidate_all(self, populated, fake_redis):
        await fake_redis.set("othernamespace:key", b"\x00{}")
        result = await CacheInvalidator(populated).handle_event(CacheEvent.MANUAL_INVALIDATE_ALL)

        assert result.keys_invalidated == 11
        assert fake_redis.keys_matching("test:*") == []
        assert fake_redis.keys_matching("othernamespace:*") == ["othernamespace:key"]

    async def test_never_raises_when_redis_down(self, populated, fake_redis):
        fake_redis.fail_with = RedisConnectionError("down")
        result = await CacheInvalidator(populated).handle_event(
            CacheEvent.BLOG_DELETED, slug="old-slug"
        )
        assert result.keys_invalidated == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
