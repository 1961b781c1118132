"""
API Endpoints for Skills

Public:
1. List skills (grouped by category unless filtered) - cached
2. Get a single skill

Admin:
3. Create / update / delete - invalidate skills cache
"""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio.auth import CurrentUser, require_admin
from portfolio.cache import CacheEvent, CacheInvalidator, CacheTTL, RedisCache, keys
from portfolio.database import Skill
from portfolio.utils.errors import NotFoundError

from api.common import ApiModel, apply_updates, get_cache, get_db, get_invalidator, parse_uuid, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/skills", tags=["Skills"])


class SkillResponse(ApiModel):
    id: UUID
    category: str
    name: str
    icon_url: Optional[str] = None
    level: int
    order: int
    created_at: datetime
    updated_at: datetime


class CreateSkillRequest(ApiModel):
    category: str
    name: str
    icon_url: Optional[str] = None
    level: int = 0
    order: int = 0


class UpdateSkillRequest(ApiModel):
    category: Optional[str] = None
    name: Optional[str] = None
    icon_url: Optional[str] = None
    level: Optional[int] = None
    order: Optional[int] = None


def get_skill_or_404(db: Session, skill_id: str) -> Skill:
    sid = parse_uuid(skill_id)
    skill = db.get(Skill, sid) if sid is not None else None
    if skill is None:
        raise NotFoundError("Skill not found")
    return skill


@router.get("")
async def list_skills(
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
):
    """
    List skills ordered by category then order.

    Without a category filter the data is an object keyed by category.
    """
    cache_key = keys.skills_list_key(category)

    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    query = select(Skill)
    if category:
        query = query.where(Skill.category == category)
    skills = db.scalars(query.order_by(Skill.category.asc(), Skill.order.asc(), Skill.name.asc())).all()

    items = [SkillResponse.model_validate(s).to_json() for s in skills]
    if category:
        envelope = success(items)
    else:
        grouped = OrderedDict()
        for item in items:
            grouped.setdefault(item["category"], []).append(item)
        envelope = success(dict(grouped))

    await cache.set(cache_key, envelope, CacheTTL.SKILLS)
    return envelope


@router.get("/{skill_id}")
async def get_skill(skill_id: str, db: Session = Depends(get_db)):
    return success(SkillResponse.model_validate(get_skill_or_404(db, skill_id)).to_json())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_skill(
    body: CreateSkillRequest,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    skill = Skill(**body.model_dump())
    db.add(skill)
    db.commit()
    db.refresh(skill)

    logger.info(f"Skill created: {skill.category}/{skill.name} by {admin.email}")
    await invalidator.handle_event(CacheEvent.SKILL_CREATED, entity_id=str(skill.id))

    return success(SkillResponse.model_validate(skill).to_json(), message="Skill created successfully")


@router.api_route("/{skill_id}", methods=["PUT", "PATCH"])
async def update_skill(
    skill_id: str,
    body: UpdateSkillRequest,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    skill = get_skill_or_404(db, skill_id)
    apply_updates(skill, body.model_dump(exclude_unset=True), required=("category", "name", "level", "order"))
    db.commit()
    db.refresh(skill)

    await invalidator.handle_event(CacheEvent.SKILL_UPDATED, entity_id=str(skill.id))

    return success(SkillResponse.model_validate(skill).to_json(), message="Skill updated successfully")


@router.delete("/{skill_id}")
async def delete_skill(
    skill_id: str,
    db: Session = Depends(get_db),
    invalidator: CacheInvalidator = Depends(get_invalidator),
    admin: CurrentUser = Depends(require_admin),
):
    skill = get_skill_or_404(db, skill_id)
    db.delete(skill)
    db.commit()

    logger.info(f"Skill deleted: {skill_id} by {admin.email}")
    await invalidator.handle_event(CacheEvent.SKILL_DELETED, entity_id=skill_id)

    return success(message="Skill deleted successfully")
