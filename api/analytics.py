"""
API Endpoints for View Analytics

All routes require an admin.

1. Summary (top projects/blogs, totals) - cached
2. Top referrers / countries
3. Exact per-entity view counts
4. Daily histogram for one entity over a date range
5. Retention cleanup of old view events - invalidates the summary
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio.analytics import AnalyticsService, EntityType
from portfolio.auth import CurrentUser, require_admin
from portfolio.cache import CacheEvent, CacheInvalidator, CacheTTL, RedisCache, keys
from portfolio.database import Blog, Project
from portfolio.utils.config import Settings
from portfolio.utils.errors import BadRequestError, NotFoundError

from api.common import get_app_settings, get_cache, get_db, get_invalidator, parse_uuid, success

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"],
    dependencies=[Depends(require_admin)],
)


# =============================================================================
# HELPERS
# =============================================================================

def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def resolve_project_id(db: Session, ref: str) -> UUID:
    """Soft-deleted projects are not found."""
    pid = parse_uuid(ref)
    found = None
    if pid is not None:
        found = db.scalar(select(Project.id).where(Project.id == pid, Project.deleted_at.is_(None)))
    if found is None:
        raise NotFoundError("Project not found")
    return found


def resolve_blog_id(db: Session, ref: str) -> UUID:
    """A blog may be referenced by id or by slug. Soft-deleted posts are not found."""
    live = Blog.deleted_at.is_(None)
    bid = parse_uuid(ref)
    found = None
    if bid is not None:
        found = db.scalar(select(Blog.id).where(Blog.id == bid, live))
    if found is None:
        found = db.scalar(select(Blog.id).where(Blog.slug == ref, live))
    if found is None:
        raise NotFoundError("Blog post not found")
    return found


def parse_range_bound(value: Optional[str], name: str, end_of_day: bool = False) -> datetime:
    """
    Parse an ISO date or datetime query value into a naive UTC datetime.

    A bare date means the start of that day, or its last instant when
    end_of_day is set.
    """
    if not value:
        raise BadRequestError(f"{name} is required")

    raw = value.strip()
    try:
        if len(raw) == 10:
            day = date.fromisoformat(raw)
            return datetime.combine(day, time.max if end_of_day else time.min)
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise BadRequestError(f"{name} is not a valid ISO date: {value}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date_range(start_date: Optional[str], end_date: Optional[str]) -> Tuple[datetime, datetime]:
    start = parse_range_bound(start_date, "startDate")
    end = parse_range_bound(end_date, "endDate", end_of_day=True)
    if start > end:
        raise BadRequestError("startDate must not be after endDate")
    return start, end


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/summary")
async def get_summary(
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
):
    """Top 10 projects and blogs by views, with totals. Cached for 5 minutes."""
    cached = await cache.get(keys.ANALYTICS_SUMMARY)
    if cached is not None:
        return cached

    summary = AnalyticsService(db).get_summary()
    envelope = success(_dump(summary))

    await cache.set(keys.ANALYTICS_SUMMARY, envelope, CacheTTL.ANALYTICS_SUMMARY)
    return envelope


@router.get("/referrers")
async def get_top_referrers(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    referrers = AnalyticsService(db).get_top_referrers(limit)
    return success([_dump(r) for r in referrers])


@router.get("/countries")
async def get_top_countries(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    countries = AnalyticsService(db).get_top_countries(limit)
    return success([_dump(c) for c in countries])


@router.get("/project/{ref}/views")
async def get_project_views(ref: str, db: Session = Depends(get_db)):
    project_id = resolve_project_id(db, ref)
    views = AnalyticsService(db).get_project_views(project_id)
    return success({"projectId": str(project_id), "views": views})


@router.get("/blog/{ref}/views")
async def get_blog_views(ref: str, db: Session = Depends(get_db)):
    blog_id = resolve_blog_id(db, ref)
    views = AnalyticsService(db).get_blog_views(blog_id)
    return success({"blogId": str(blog_id), "views": views})


@router.delete("/cleanup")
async def cleanup_old_view_events(
    days: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    settings: Settings = Depends(get_app_settings),
    admin: CurrentUser = Depends(require_admin),
):
    """Delete view events older than `days` (default from VIEW_RETENTION_DAYS)."""
    days_to_keep = days if days is not None else settings.VIEW_RETENTION_DAYS

    deleted = AnalyticsService(db).delete_old_view_events(days_to_keep)
    db.commit()

    logger.info(f"View cleanup by {admin.email}: {deleted} events older than {days_to_keep} days")
    await invalidator.handle_event(CacheEvent.VIEWS_PURGED)

    return success(
        {"deleted": deleted, "daysKept": days_to_keep},
        message=f"Deleted {deleted} view events older than {days_to_keep} days",
    )


@router.get("/{entity_type}/{ref}/date-range")
async def get_views_by_date_range(
    entity_type: str,
    ref: str,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """
    Daily view counts for a project or blog between startDate and endDate,
    both inclusive. Days without views are omitted.
    """
    try:
        kind = EntityType(entity_type)
    except ValueError:
        raise BadRequestError("Type must be 'project' or 'blog'")

    start, end = parse_date_range(start_date, end_date)

    if kind == EntityType.PROJECT:
        entity_id = resolve_project_id(db, ref)
    else:
        entity_id = resolve_blog_id(db, ref)

    daily = AnalyticsService(db).get_views_by_date_range(kind, entity_id, start, end)
    return success([_dump(d) for d in daily])
