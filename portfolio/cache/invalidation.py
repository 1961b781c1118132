"""
Cache Invalidation Service

Event-driven cache invalidation for content writes.

Rules:
- Any create/update/delete of an entity clears that entity's single-item
  key(s) (old AND new slug when a rename happened) and the entire list
  namespace for the entity type, since membership, ordering and pagination
  can change on any write.
- VIEWS_PURGED: the retention sweep changed the analytics summary inputs.

Invalidation is best-effort like every other cache operation: it never
raises, it reports.
"""

import logging
import time
from enum import Enum
from typing import Iterable, List, Optional
from dataclasses import dataclass, field

from portfolio.cache import keys
from portfolio.cache.redis_cache import RedisCache


logger = logging.getLogger(__name__)


class CacheEvent(Enum):
    """Events that trigger cache invalidation."""

    # Projects
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_DELETED = "project_deleted"

    # Blog posts
    BLOG_CREATED = "blog_created"
    BLOG_UPDATED = "blog_updated"
    BLOG_DELETED = "blog_deleted"

    # Skills
    SKILL_CREATED = "skill_created"
    SKILL_UPDATED = "skill_updated"
    SKILL_DELETED = "skill_deleted"

    # Analytics
    VIEWS_PURGED = "views_purged"

    # Manual invalidation
    MANUAL_INVALIDATE_ALL = "manual_invalidate_all"


PROJECT_EVENTS = {CacheEvent.PROJECT_CREATED, CacheEvent.PROJECT_UPDATED, CacheEvent.PROJECT_DELETED}
BLOG_EVENTS = {CacheEvent.BLOG_CREATED, CacheEvent.BLOG_UPDATED, CacheEvent.BLOG_DELETED}
SKILL_EVENTS = {CacheEvent.SKILL_CREATED, CacheEvent.SKILL_UPDATED, CacheEvent.SKILL_DELETED}


@dataclass
class InvalidationResult:
    """Result of a cache invalidation operation."""
    event: CacheEvent
    success: bool
    keys_invalidated: int
    duration_ms: float
    errors: List[str] = field(default_factory=list)


class CacheInvalidator:
    """
    Maps write events to the cache keys they make stale.
    """

    def __init__(self, cache: RedisCache):
        self._cache = cache

    async def _delete_keys(self, cache_keys: Iterable[str]) -> int:
        count = 0
        for key in dict.fromkeys(k for k in cache_keys if k):
            if await self._cache.delete(key):
                count += 1
        return count

    async def handle_event(
        self,
        event: CacheEvent,
        entity_id: Optional[str] = None,
        slug: Optional[str] = None,
        previous_slug: Optional[str] = None,
    ) -> InvalidationResult:
        """
        Invalidate everything an event can have made stale.

        Args:
            entity_id: project id (project events)
            slug: current blog slug (blog events)
            previous_slug: blog slug before a rename
        """
        start_time = time.perf_counter()
        errors = []
        keys_invalidated = 0

        logger.info(
            f"Cache invalidation event: {event.value}, "
            f"entity={entity_id}, slug={slug}, previous_slug={previous_slug}"
        )

        try:
            if event in PROJECT_EVENTS:
                keys_invalidated += await self._cache.delete_pattern(
                    keys.list_pattern(keys.PROJECTS_NAMESPACE)
                )
                if entity_id:
                    keys_invalidated += await self._delete_keys([keys.project_key(entity_id)])

            elif event in BLOG_EVENTS:
                keys_invalidated += await self._cache.delete_pattern(
                    keys.list_pattern(keys.BLOGS_NAMESPACE)
                )
                keys_invalidated += await self._delete_keys([
                    keys.blog_key(s) for s in (previous_slug, slug) if s
                ])

            elif event in SKILL_EVENTS:
                keys_invalidated += await self._cache.delete_pattern(
                    keys.list_pattern(keys.SKILLS_NAMESPACE)
                )

            elif event == CacheEvent.VIEWS_PURGED:
                keys_invalidated += await self._delete_keys([keys.ANALYTICS_SUMMARY])

            elif event == CacheEvent.MANUAL_INVALIDATE_ALL:
                # Nuclear option - use sparingly
                keys_invalidated += await self._cache.delete_pattern("*")

        except Exception as e:
            errors.append(str(e))
            logger.error(f"Cache invalidation error: {e}")

        duration = (time.perf_counter() - start_time) * 1000

        result = InvalidationResult(
            event=event,
            success=len(errors) == 0,
            keys_invalidated=keys_invalidated,
            duration_ms=duration,
            errors=errors,
        )

        logger.info(
            f"Invalidation complete: {keys_invalidated} keys, duration: {duration:.2f}ms"
        )

        return result
