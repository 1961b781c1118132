"""
Cache Configuration

Centralized configuration for the Redis caching layer.
TTLs are per response family; keys are namespaced by CacheConfig.namespace.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from functools import lru_cache


@dataclass(frozen=True)
class CacheTTL:
    """
    Cache TTL configuration by data type, in seconds.

    Content only changes on admin writes, and every write invalidates
    explicitly, so TTLs bound staleness across namespaces rather than drive
    freshness. The analytics summary changes on every tracked view and has
    no write-side invalidation, hence the short TTL.
    """

    ANALYTICS_SUMMARY: int = 300
    CONTENT_LIST: int = 600
    CONTENT_DETAIL: int = 600
    SKILLS: int = 1800


@dataclass
class CacheConfig:
    """
    Main cache configuration.

    Settings can be overridden via environment variables:
    - CACHE_ENABLED: Enable/disable caching globally
    - CACHE_NAMESPACE: Prefix for every key
    - REDIS_URL / REDIS_PASSWORD: Connection
    """

    # Cache namespace (for key prefixes)
    namespace: str = field(default_factory=lambda: os.getenv(
        "CACHE_NAMESPACE",
        "cache"
    ))

    # Global cache toggle
    enabled: bool = field(default_factory=lambda: os.getenv(
        "CACHE_ENABLED",
        "true"
    ).lower() == "true")

    # Redis connection
    redis_url: str = field(default_factory=lambda: os.getenv(
        "REDIS_URL",
        "redis://localhost:6379/0"
    ))
    redis_password: Optional[str] = field(default_factory=lambda: os.getenv(
        "REDIS_PASSWORD"
    ))
    redis_max_connections: int = 50
    redis_socket_timeout: float = 2.0
    redis_connect_timeout: float = 2.0

    # Compression
    compression_enabled: bool = field(default_factory=lambda: os.getenv(
        "CACHE_COMPRESSION_ENABLED",
        "true"
    ).lower() == "true")
    compression_threshold: int = 1024  # bytes

    # Circuit breaker
    circuit_breaker_enabled: bool = True
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout: int = 30  # seconds


@lru_cache(maxsize=1)
def get_cache_config() -> CacheConfig:
    """Get singleton cache configuration."""
    return CacheConfig()
