"""
API Endpoints for Blog Posts

Public:
1. List posts (paginated; non-admins only ever see published posts) - cached
2. Get a post by slug - cached when published, tracks a view

Admin:
3. Create / update / soft-delete with slug generation - invalidate blog cache
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portfolio.analytics import EntityType, ViewRecorder, extract_view_metadata
from portfolio.auth import CurrentUser, get_current_user_optional, require_admin
from portfolio.cache import CacheEvent, CacheInvalidator, CacheTTL, RedisCache, keys
from portfolio.database import Blog, utcnow
from portfolio.utils.config import Settings
from portfolio.utils.errors import ConflictError, NotFoundError
from portfolio.utils.pagination import calculate_pagination, get_pagination_params
from portfolio.utils.slugify import calculate_read_time, ensure_unique_slug, generate_slug

from api.common import (
    ApiModel,
    apply_updates,
    get_app_settings,
    get_cache,
    get_db,
    get_invalidator,
    get_recorder,
    parse_uuid,
    success,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blogs", tags=["Blogs"])

DEFAULT_SLUG = "post"


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================

class BlogListItem(ApiModel):
    """List rows omit the body."""
    id: UUID
    title: str
    slug: str
    excerpt: Optional[str] = None
    tags: List[str] = []
    image_url: Optional[str] = None
    published: bool
    published_at: Optional[datetime] = None
    read_time: Optional[int] = None
    views: int
    created_at: datetime
    updated_at: datetime


class BlogResponse(BlogListItem):
    content: str


class CreateBlogRequest(ApiModel):
    title: str
    content: str
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    tags: List[str] = []
    image_url: Optional[str] = None
    published: bool = False


class UpdateBlogRequest(ApiModel):
    """Partial update: only fields present in the body are written."""
    title: Optional[str] = None
    content: Optional[str] = None
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    tags: Optional[List[str]] = None
    image_url: Optional[str] = None
    published: Optional[bool] = None


# =============================================================================
# HELPERS
# =============================================================================

def get_live_blog(db: Session, blog_id: str) -> Blog:
    """Fetch a non-deleted post by id or raise NotFoundError."""
    bid = parse_uuid(blog_id)
    blog = None
    if bid is not None:
        blog = db.scalar(select(Blog).where(Blog.id == bid, Blog.deleted_at.is_(None)))
    if blog is None:
        raise NotFoundError("Blog post not found")
    return blog


def unique_slug(db: Session, source: str, exclude_id: Optional[UUID] = None) -> str:
    """
    Slugify `source` and suffix it until no other row holds it.

    Soft-deleted rows still own their slug (the column is unique).
    """
    def exists(candidate: str) -> bool:
        query = select(Blog.id).where(Blog.slug == candidate)
        if exclude_id is not None:
            query = query.where(Blog.id != exclude_id)
        return db.scalar(query) is not None

    return ensure_unique_slug(generate_slug(source) or DEFAULT_SLUG, exists)


def commit_or_conflict(db: Session) -> None:
    """Commit; a unique-slug race lost to a concurrent writer becomes 409."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Blog write rejected by constraint: {e.orig}")
        raise ConflictError("A blog post with this slug already exists, please retry")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("")
async def list_blogs(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    published: bool = Query(False),
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
):
    """
    List posts, newest first.

    Non-admins always get published posts only; admins get everything unless
    they pass published=true.
    """
    is_admin = current_user is not None and current_user.is_admin
    published_only = published if is_admin else True

    params = get_pagination_params(page, limit)
    cache_key = keys.blog_list_key(params.page, params.limit, published_only)

    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    query = select(Blog).where(Blog.deleted_at.is_(None))
    if published_only:
        query = query.where(Blog.published.is_(True))

    total = db.scalar(select(func.count()).select_from(query.subquery())) or 0
    blogs = db.scalars(
        query.order_by(Blog.created_at.desc())
        .offset(params.offset)
        .limit(params.limit)
    ).all()

    envelope = success(
        [BlogListItem.model_validate(b).to_json() for b in blogs],
        pagination=calculate_pagination(total, params.page, params.limit),
    )
    await cache.set(cache_key, envelope, CacheTTL.CONTENT_LIST)
    return envelope


@router.get("/{slug}")
async def get_blog(
    slug: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
    recorder: ViewRecorder = Depends(get_recorder),
    settings: Settings = Depends(get_app_settings),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
):
    """Get a post by slug and record the view after responding."""
    cache_key = keys.blog_key(slug)
    envelope = await cache.get(cache_key)

    if envelope is None:
        blog = db.scalar(select(Blog).where(Blog.slug == slug, Blog.deleted_at.is_(None)))
        is_admin = current_user is not None and current_user.is_admin
        if blog is None or (not blog.published and not is_admin):
            raise NotFoundError("Blog post not found")

        envelope = success(BlogResponse.model_validate(blog).to_json())
        # Drafts stay out of the shared key so they never reach public readers
        if blog.published:
            await cache.set(cache_key, envelope, CacheTTL.CONTENT_DETAIL)

    background_tasks.add_task(
        recorder.record_detached,
        EntityType.BLOG,
        UUID(envelope["data"]["id"]),
        extract_view_metadata(request, settings),
    )
    return envelope


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_blog(
    body: CreateBlogRequest,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    blog = Blog(
        title=body.title,
        slug=unique_slug(db, body.slug or body.title),
        content=body.content,
        excerpt=body.excerpt,
        tags=body.tags,
        image_url=body.image_url,
        published=body.published,
        published_at=utcnow() if body.published else None,
        read_time=calculate_read_time(body.content),
    )
    db.add(blog)
    commit_or_conflict(db)
    db.refresh(blog)

    logger.info(f"Blog post created: {blog.slug} by {admin.email}")
    await invalidator.handle_event(CacheEvent.BLOG_CREATED, entity_id=str(blog.id), slug=blog.slug)

    return success(BlogResponse.model_validate(blog).to_json(), message="Blog post created successfully")


@router.api_route("/{blog_id}", methods=["PUT", "PATCH"])
async def update_blog(
    blog_id: str,
    body: UpdateBlogRequest,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    blog = get_live_blog(db, blog_id)
    previous_slug = blog.slug
    updates = body.model_dump(exclude_unset=True)

    # An explicit slug wins; otherwise a title change re-derives it
    requested_slug = updates.pop("slug", None)
    if requested_slug:
        if generate_slug(requested_slug) != previous_slug:
            blog.slug = unique_slug(db, requested_slug, exclude_id=blog.id)
    elif updates.get("title") and updates["title"] != blog.title:
        blog.slug = unique_slug(db, updates["title"], exclude_id=blog.id)

    if updates.get("published") and not blog.published:
        blog.published_at = utcnow()
    if updates.get("content"):
        blog.read_time = calculate_read_time(updates["content"])

    apply_updates(blog, updates, required=("title", "content", "tags", "published"))
    commit_or_conflict(db)
    db.refresh(blog)

    await invalidator.handle_event(
        CacheEvent.BLOG_UPDATED,
        entity_id=str(blog.id),
        slug=blog.slug,
        previous_slug=previous_slug,
    )

    return success(BlogResponse.model_validate(blog).to_json(), message="Blog post updated successfully")


@router.delete("/{blog_id}")
async def delete_blog(
    blog_id: str,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    blog = get_live_blog(db, blog_id)
    blog.deleted_at = utcnow()
    db.commit()

    logger.info(f"Blog post soft-deleted: {blog.slug} by {admin.email}")
    await invalidator.handle_event(CacheEvent.BLOG_DELETED, entity_id=str(blog.id), slug=blog.slug)

    return success(message="Blog post deleted successfully")
