"""
API Endpoints for Projects

Public:
1. List projects (paginated, optional featured filter) - cached
2. Get a single project - cached, tracks a view

Admin:
3. Create / update / soft-delete - invalidate project cache
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portfolio.analytics import EntityType, ViewRecorder, extract_view_metadata
from portfolio.auth import CurrentUser, require_admin
from portfolio.cache import CacheEvent, CacheInvalidator, CacheTTL, RedisCache, keys
from portfolio.database import Project, utcnow
from portfolio.utils.config import Settings
from portfolio.utils.errors import NotFoundError
from portfolio.utils.pagination import calculate_pagination, get_pagination_params

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

router = APIRouter(prefix="/projects", tags=["Projects"])


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================

class ProjectResponse(ApiModel):
    id: UUID
    title: str
    description: str
    tags: List[str] = []
    stack: List[str] = []
    image_url: Optional[str] = None
    github_url: Optional[str] = None
    live_url: Optional[str] = None
    featured: bool
    order: int
    created_at: datetime
    updated_at: datetime


class CreateProjectRequest(ApiModel):
    title: str
    description: str
    tags: List[str] = []
    stack: List[str] = []
    image_url: Optional[str] = None
    github_url: Optional[str] = None
    live_url: Optional[str] = None
    featured: bool = False
    order: int = 0


class UpdateProjectRequest(ApiModel):
    """Partial update: only fields present in the body are written."""
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    stack: Optional[List[str]] = None
    image_url: Optional[str] = None
    github_url: Optional[str] = None
    live_url: Optional[str] = None
    featured: Optional[bool] = None
    order: Optional[int] = None


# =============================================================================
# HELPERS
# =============================================================================

def get_live_project(db: Session, project_id: str) -> Project:
    """Fetch a non-deleted project or raise NotFoundError."""
    pid = parse_uuid(project_id)
    project = None
    if pid is not None:
        project = db.scalar(
            select(Project).where(Project.id == pid, Project.deleted_at.is_(None))
        )
    if project is None:
        raise NotFoundError("Project not found")
    return project


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("")
async def list_projects(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    featured: bool = Query(False),
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
):
    """List non-deleted projects: featured first, then by order, newest first."""
    params = get_pagination_params(page, limit)
    cache_key = keys.project_list_key(params.page, params.limit, featured)

    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    query = select(Project).where(Project.deleted_at.is_(None))
    if featured:
        query = query.where(Project.featured.is_(True))

    total = db.scalar(select(func.count()).select_from(query.subquery())) or 0
    projects = db.scalars(
        query.order_by(Project.featured.desc(), Project.order.asc(), Project.created_at.desc())
        .offset(params.offset)
        .limit(params.limit)
    ).all()

    envelope = success(
        [ProjectResponse.model_validate(p).to_json() for p in projects],
        pagination=calculate_pagination(total, params.page, params.limit),
    )
    await cache.set(cache_key, envelope, CacheTTL.CONTENT_LIST)
    return envelope


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
    recorder: ViewRecorder = Depends(get_recorder),
    settings: Settings = Depends(get_app_settings),
):
    """Get a project and record the view after responding."""
    pid = parse_uuid(project_id)
    if pid is None:
        raise NotFoundError("Project not found")

    cache_key = keys.project_key(pid)
    envelope = await cache.get(cache_key)

    if envelope is None:
        project = get_live_project(db, project_id)
        envelope = success(ProjectResponse.model_validate(project).to_json())
        await cache.set(cache_key, envelope, CacheTTL.CONTENT_DETAIL)

    background_tasks.add_task(
        recorder.record_detached,
        EntityType.PROJECT,
        pid,
        extract_view_metadata(request, settings),
    )
    return envelope


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    body: CreateProjectRequest,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    project = Project(**body.model_dump())
    db.add(project)
    db.commit()
    db.refresh(project)

    logger.info(f"Project created: {project.id} by {admin.email}")
    await invalidator.handle_event(CacheEvent.PROJECT_CREATED, entity_id=str(project.id))

    return success(
        ProjectResponse.model_validate(project).to_json(),
        message="Project created successfully",
    )


@router.api_route("/{project_id}", methods=["PUT", "PATCH"])
async def update_project(
    project_id: str,
    body: UpdateProjectRequest,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    project = get_live_project(db, project_id)

    apply_updates(
        project,
        body.model_dump(exclude_unset=True),
        required=("title", "description", "tags", "stack", "featured", "order"),
    )

    db.commit()
    db.refresh(project)

    await invalidator.handle_event(CacheEvent.PROJECT_UPDATED, entity_id=str(project.id))

    return success(
        ProjectResponse.model_validate(project).to_json(),
        message="Project updated successfully",
    )


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    """Soft delete: the row stays so historical view events keep their reference."""
    project = get_live_project(db, project_id)
    project.deleted_at = utcnow()
    db.commit()

    logger.info(f"Project soft-deleted: {project.id} by {admin.email}")
    await invalidator.handle_event(CacheEvent.PROJECT_DELETED, entity_id=str(project.id))

    return success(message="Project deleted successfully")
