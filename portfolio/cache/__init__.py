"""
Portfolio Caching Layer

Read-through Redis cache in front of content and analytics reads:
- Read path: probe cache -> on miss query store -> set with TTL -> respond
- Write path: bypass cache, mutate store, invalidate via CacheInvalidator
- Failure mode: a cache outage degrades to uncached reads, never to errors

Key components:
- RedisCache: namespaced get/set/delete/pattern-delete with compression
  and a circuit breaker
- CacheInvalidator: event-driven invalidation for content writes
- keys: key construction conventions

Usage:
    cache = RedisCache()
    await cache.initialize()

    envelope = await cache.get(keys.project_list_key(1, 10, False))
    if envelope is None:
        envelope = build_envelope()
        await cache.set(keys.project_list_key(1, 10, False), envelope, CacheTTL.CONTENT_LIST)

    await CacheInvalidator(cache).handle_event(CacheEvent.PROJECT_UPDATED, entity_id=pid)
"""

from portfolio.cache.config import CacheConfig, CacheTTL, get_cache_config
from portfolio.cache.redis_cache import RedisCache, CircuitBreaker
from portfolio.cache.invalidation import CacheInvalidator, CacheEvent, InvalidationResult
from portfolio.cache import keys

__all__ = [
    # Config
    "CacheConfig",
    "CacheTTL",
    "get_cache_config",
    # Redis
    "RedisCache",
    "CircuitBreaker",
    # Invalidation
    "CacheInvalidator",
    "CacheEvent",
    "InvalidationResult",
    # Keys
    "keys",
]
