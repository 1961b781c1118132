"""
Cache Management API

Provides endpoints for cache monitoring and manual operations.

Endpoints:
- Health check for monitoring/alerting
- Statistics for hit rate and compression insights
- Manual invalidation for debugging
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from portfolio.auth import require_admin
from portfolio.cache import CacheEvent, CacheInvalidator, RedisCache
from portfolio.database import utcnow

from api.common import get_cache, get_invalidator, success


logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/cache",
    tags=["Cache Management"],
    dependencies=[Depends(require_admin)],
)


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class CacheHealthResponse(BaseModel):
    """Cache health check response."""
    status: str = Field(..., description="healthy or unhealthy")
    backend: str = Field(default="redis", description="Cache backend type")
    detail: str = Field(..., description="connected, disabled or error")
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class CacheStatsResponse(BaseModel):
    """Cache statistics response."""
    enabled: bool
    initialized: bool
    hits: int
    misses: int
    errors: int
    hit_rate_percent: float
    avg_latency_ms: float
    bytes_written: int
    bytes_read: int
    bytes_saved_compression: int
    circuit_breaker_open: bool


class InvalidationResponse(BaseModel):
    """Cache invalidation response."""
    success: bool
    keys_invalidated: int
    duration_ms: float
    errors: List[str] = []


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/health")
async def cache_health_check(cache: RedisCache = Depends(get_cache)):
    """
    Check cache infrastructure health.

    Use this endpoint for monitoring and alerting systems. An unhealthy cache
    only means the API is serving everything from the database.
    """
    health = await cache.health_check()

    response = CacheHealthResponse(
        status="healthy" if health["healthy"] else "unhealthy",
        detail=health["status"],
        latency_ms=health.get("latency_ms"),
        error=health.get("error"),
    )
    return success(response.model_dump(mode="json"))


@router.get("/stats")
async def get_cache_stats(cache: RedisCache = Depends(get_cache)):
    """
    Get current cache statistics.

    Note: Stats are per process and reset on application restart.
    """
    stats = CacheStatsResponse(**cache.get_stats())
    return success(stats.model_dump(mode="json"))


@router.post("/invalidate/all")
async def invalidate_all_cache(invalidator: CacheInvalidator = Depends(get_invalidator)):
    """
    Invalidate ALL cache entries in this application's namespace.

    WARNING: Every subsequent read is a miss until the cache warms up again.
    """
    logger.warning("Manual invalidation of all cache entries requested")

    result = await invalidator.handle_event(CacheEvent.MANUAL_INVALIDATE_ALL)

    response = InvalidationResponse(
        success=result.success,
        keys_invalidated=result.keys_invalidated,
        duration_ms=result.duration_ms,
        errors=result.errors,
    )
    return success(response.model_dump(mode="json"))
