"""
Redis Cache Implementation

Read-through cache for API responses with:
- Automatic compression for large values
- Circuit breaker for resilience
- Namespace isolation (every key is prefixed)
- Async operations throughout
- Graceful degradation: a cache failure is a miss, never a request failure
"""

import asyncio
import logging
import time
from typing import Any, Optional, List, Dict
from dataclasses import dataclass, field
from contextlib import asynccontextmanager

from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError

from portfolio.cache.config import CacheConfig, get_cache_config
from portfolio.cache.compression import (
    CacheCompressor,
    serialize_value,
    deserialize_value,
)


logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache operation statistics."""
    hits: int = 0
    misses: int = 0
    errors: int = 0
    bytes_written: int = 0
    bytes_read: int = 0
    bytes_saved_compression: int = 0
    latency_samples: List[float] = field(default_factory=list)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    @property
    def avg_latency_ms(self) -> float:
        if not self.latency_samples:
            return 0.0
        return sum(self.latency_samples[-100:]) / len(self.latency_samples[-100:]) * 1000

    def record_latency(self, seconds: float):
        """Record a latency sample."""
        self.latency_samples.append(seconds)
        # Keep only last 1000 samples
        if len(self.latency_samples) > 1000:
            self.latency_samples = self.latency_samples[-1000:]


@dataclass
class CircuitBreakerState:
    """Circuit breaker state tracking."""
    failures: int = 0
    last_failure: float = 0.0
    is_open: bool = False
    opened_at: float = 0.0


class CircuitBreaker:
    """
    Circuit breaker for the Redis connection.

    After `threshold` consecutive failures every call fails fast for
    `timeout` seconds, so a Redis outage costs requests nothing but a log
    line instead of a socket timeout each.
    """

    def __init__(
        self,
        threshold: int = 5,
        timeout: int = 30,
    ):
        self.threshold = threshold
        self.timeout = timeout
        self.state = CircuitBreakerState()
        self._lock = asyncio.Lock()

    async def is_available(self) -> bool:
        """Check if circuit allows requests."""
        if not self.state.is_open:
            return True

        # Check if timeout has passed
        if time.time() - self.state.opened_at >= self.timeout:
            async with self._lock:
                # Half-open state - allow requests through again
                self.state.is_open = False
                self.state.failures = 0
                logger.info("Circuit breaker closed, allowing requests")
            return True

        return False

    async def record_success(self):
        """Record successful operation."""
        async with self._lock:
            self.state.failures = 0
            self.state.is_open = False

    async def record_failure(self):
        """Record failed operation."""
        async with self._lock:
            self.state.failures += 1
            self.state.last_failure = time.time()

            if self.state.failures >= self.threshold and not self.state.is_open:
                self.state.is_open = True
                self.state.opened_at = time.time()
                logger.warning(
                    f"Circuit breaker opened after {self.state.failures} failures. "
                    f"Will retry in {self.timeout} seconds."
                )


class RedisCache:
    """
    Redis-backed cache for serialized response envelopes.

    Keys passed in are un-namespaced (e.g. "projects:list:1:10:false");
    the namespace prefix is applied here.

    Contract:
    - get() returns None on miss AND on any error
    - set()/delete()/delete_pattern() are best-effort and never raise
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        client: Optional[Redis] = None,
    ):
        self.config = config or get_cache_config()
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = client
        self._owns_client = client is None
        self._compressor = CacheCompressor(
            enabled=self.config.compression_enabled,
            threshold=self.config.compression_threshold,
        )
        self._circuit_breaker = CircuitBreaker(
            threshold=self.config.circuit_breaker_threshold,
            timeout=self.config.circuit_breaker_timeout,
        ) if self.config.circuit_breaker_enabled else None
        self._stats = CacheStats()
        self._initialized = False
        self._lock = asyncio.Lock()

    async def initialize(self):
        """Create the connection pool (unless a client was injected) and ping."""
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return

            try:
                if self._redis is None:
                    self._pool = ConnectionPool.from_url(
                        self.config.redis_url,
                        password=self.config.redis_password,
                        max_connections=self.config.redis_max_connections,
                        socket_timeout=self.config.redis_socket_timeout,
                        socket_connect_timeout=self.config.redis_connect_timeout,
                        decode_responses=False,  # We handle bytes directly
                    )
                    self._redis = Redis(connection_pool=self._pool)

                # Test connection
                await self._redis.ping()
                self._initialized = True
                logger.info(f"Redis cache initialized (namespace={self.config.namespace})")

            except Exception as e:
                logger.error(f"Failed to initialize Redis: {e}")
                self._initialized = False
                raise

    async def close(self):
        """Close Redis connection pool."""
        if self._redis is not None and self._owns_client:
            await self._redis.aclose()
        if self._pool is not None:
            await self._pool.disconnect()
        self._initialized = False
        logger.info("Redis cache closed")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @asynccontextmanager
    async def _with_circuit_breaker(self):
        """Fail fast while the breaker is open; count outcomes otherwise."""
        if self._circuit_breaker and not await self._circuit_breaker.is_available():
            raise RedisConnectionError("Circuit breaker is open")

        try:
            if not self._initialized:
                await self.initialize()
            yield
            if self._circuit_breaker:
                await self._circuit_breaker.record_success()
        except (RedisError, OSError):
            if self._circuit_breaker:
                await self._circuit_breaker.record_failure()
            raise

    def make_key(self, key: str) -> str:
        """Create namespaced cache key."""
        return f"{self.config.namespace}:{key}"

    # =========================================================================
    # Core Operations
    # =========================================================================

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns None if:
        - Key doesn't exist or has expired
        - Cache is disabled
        - Redis is unavailable
        - Deserialization fails
        """
        if not self.config.enabled:
            return None

        start_time = time.time()
        full_key = self.make_key(key)

        try:
            async with self._with_circuit_breaker():
                data = await self._redis.get(full_key)

            self._stats.record_latency(time.time() - start_time)

            if data is None:
                self._stats.misses += 1
                return None

            self._stats.hits += 1
            self._stats.bytes_read += len(data)

            return deserialize_value(self._compressor.decompress(data))

        except RedisConnectionError as e:
            self._stats.errors += 1
            logger.warning(f"Redis unavailable, treating {key} as a miss: {e}")
            return None
        except Exception as e:
            self._stats.errors += 1
            logger.error(f"Cache get error for {key}: {e}")
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Set value in cache with optional TTL (seconds).

        Returns True on success, False on failure.
        """
        if not self.config.enabled:
            return False

        start_time = time.time()
        full_key = self.make_key(key)

        try:
            compressed, stats = self._compressor.compress(serialize_value(value))

            if stats:
                self._stats.bytes_saved_compression += (
                    stats.original_size - stats.compressed_size
                )

            async with self._with_circuit_breaker():
                if ttl_seconds:
                    await self._redis.setex(full_key, ttl_seconds, compressed)
                else:
                    await self._redis.set(full_key, compressed)

            self._stats.record_latency(time.time() - start_time)
            self._stats.bytes_written += len(compressed)
            return True

        except RedisConnectionError as e:
            self._stats.errors += 1
            logger.warning(f"Redis unavailable, cache set failed for {key}: {e}")
            return False
        except Exception as e:
            self._stats.errors += 1
            logger.error(f"Cache set error for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key from cache. Returns True if the key existed."""
        if not self.config.enabled:
            return False

        try:
            async with self._with_circuit_breaker():
                deleted = await self._redis.delete(self.make_key(key))
            return deleted > 0
        except Exception as e:
            self._stats.errors += 1
            logger.error(f"Cache delete error for {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a glob pattern (e.g. "projects:*").

        Uses SCAN rather than KEYS so a large keyspace does not block Redis.
        Returns count deleted.
        """
        if not self.config.enabled:
            return 0

        full_pattern = self.make_key(pattern)

        try:
            async with self._with_circuit_breaker():
                keys = []
                async for key in self._redis.scan_iter(match=full_pattern, count=100):
                    keys.append(key)

                if keys:
                    deleted = await self._redis.delete(*keys)
                    logger.info(f"Deleted {deleted} keys matching {full_pattern}")
                    return deleted

            return 0

        except Exception as e:
            self._stats.errors += 1
            logger.error(f"Cache delete pattern error for {pattern}: {e}")
            return 0

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        if not self.config.enabled:
            return False

        try:
            async with self._with_circuit_breaker():
                return await self._redis.exists(self.make_key(key)) > 0
        except Exception:
            return False

    async def ttl(self, key: str) -> int:
        """Get remaining TTL in seconds for a key. Returns -1 if no TTL, -2 if not exists."""
        if not self.config.enabled:
            return -2

        try:
            async with self._with_circuit_breaker():
                return await self._redis.ttl(self.make_key(key))
        except Exception:
            return -2

    # =========================================================================
    # Statistics and Health
    # =========================================================================

    def get_stats(self) -> Dict:
        """Get cache statistics."""
        return {
            "enabled": self.config.enabled,
            "initialized": self._initialized,
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "errors": self._stats.errors,
            "hit_rate_percent": round(self._stats.hit_rate * 100, 2),
            "avg_latency_ms": round(self._stats.avg_latency_ms, 2),
            "bytes_written": self._stats.bytes_written,
            "bytes_read": self._stats.bytes_read,
            "bytes_saved_compression": self._stats.bytes_saved_compression,
            "circuit_breaker_open": (
                self._circuit_breaker.state.is_open
                if self._circuit_breaker else False
            ),
        }

    async def health_check(self) -> Dict:
        """Perform health check."""
        if not self.config.enabled:
            return {"healthy": True, "status": "disabled"}

        try:
            start = time.time()
            async with self._with_circuit_breaker():
                await self._redis.ping()
            latency_ms = (time.time() - start) * 1000

            return {
                "healthy": True,
                "status": "connected",
                "latency_ms": round(latency_ms, 2),
            }

        except Exception as e:
            return {
                "healthy": False,
                "status": "error",
                "error": str(e),
            }
