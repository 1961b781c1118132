"""
Shared API plumbing: dependency accessors for the process-lifetime handles,
the camelCase schema base, and small request helpers.
"""

from typing import Any, Dict, Generator, Optional
from uuid import UUID

from fastapi import Depends, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from portfolio.analytics import ViewRecorder
from portfolio.cache import RedisCache, CacheInvalidator
from portfolio.database import Database
from portfolio.utils.config import Settings
from portfolio.utils.errors import BadRequestError


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    """
    Request-scoped session. Endpoints commit their own writes.

    Usage:
        @router.get("/items")
        async def get_items(db: Session = Depends(get_db)):
            ...
    """
    db = database.new_session()
    try:
        yield db
    finally:
        db.close()


def get_cache(request: Request) -> RedisCache:
    return request.app.state.cache


def get_invalidator(request: Request) -> CacheInvalidator:
    return request.app.state.invalidator


def get_recorder(request: Request) -> ViewRecorder:
    return request.app.state.recorder


# =============================================================================
# SCHEMAS
# =============================================================================

class ApiModel(BaseModel):
    """Base for request/response bodies: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# HELPERS
# =============================================================================

def parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def success(data: Any = None, **extra) -> Dict[str, Any]:
    """Build the {success, data, ...} envelope."""
    body = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def apply_updates(obj: Any, updates: Dict[str, Any], required: tuple = ()) -> None:
    """Copy a partial-update payload onto a row; required columns may not be nulled."""
    nulled = [name for name in required if name in updates and updates[name] is None]
    if nulled:
        raise BadRequestError(f"Fields cannot be null: {', '.join(nulled)}")
    for name, value in updates.items():
        setattr(obj, name, value)
