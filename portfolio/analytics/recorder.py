"""
View Event Recorder

Appends one view_events row per tracked page view. For blog posts the
denormalized Blog.views counter is bumped in the same transaction.

Tracking is telemetry, not business data: the HTTP layer schedules
record_detached() as a background task after the response is sent, and any
failure there is logged and dropped. A task still in flight at shutdown may be
lost.
"""

import logging
from typing import Optional, Union
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from portfolio.analytics.schemas import EntityType, ViewMetadata
from portfolio.database import Database, Blog, ViewEvent
from portfolio.utils.config import Settings

logger = logging.getLogger(__name__)


def _truncate(value: Optional[str], length: int) -> Optional[str]:
    if value is None:
        return None
    return value[:length]


class ViewRecorder:
    """Records page views against projects and blog posts."""

    def __init__(self, database: Database):
        self.database = database

    def track_view(
        self,
        db: Session,
        entity_type: Union[EntityType, str],
        entity_id: UUID,
        metadata: Optional[ViewMetadata] = None,
    ) -> None:
        """
        Insert a ViewEvent for the entity and flush.

        The entity is not checked for existence; a bad id fails on the
        foreign key when the session flushes.
        """
        entity_type = EntityType(entity_type)
        metadata = metadata or ViewMetadata()

        event = ViewEvent(
            ip_address=_truncate(metadata.ip_address, 64),
            user_agent=_truncate(metadata.user_agent, 1000),
            referrer=_truncate(metadata.referrer, 2000),
            country=_truncate(metadata.country, 100),
            city=_truncate(metadata.city, 100),
        )

        if entity_type == EntityType.PROJECT:
            event.project_id = entity_id
        else:
            event.blog_id = entity_id
            db.execute(
                update(Blog)
                .where(Blog.id == entity_id)
                .values(views=Blog.views + 1, updated_at=Blog.updated_at)
            )

        db.add(event)
        db.flush()

    def record_detached(
        self,
        entity_type: Union[EntityType, str],
        entity_id: UUID,
        metadata: Optional[ViewMetadata] = None,
    ) -> None:
        """
        Background-task body: own session, errors logged and discarded.
        """
        try:
            with self.database.session() as db:
                self.track_view(db, entity_type, entity_id, metadata)
        except Exception as e:
            logger.error(f"Failed to track view for {entity_type}={entity_id}: {e}")


def extract_view_metadata(request, settings: Settings) -> ViewMetadata:
    """
    Pull view metadata from a Starlette request.

    Client IP is the first X-Forwarded-For hop when behind a proxy, otherwise
    the socket peer. Country/city come from edge-provided headers when present.
    """
    headers = request.headers

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    elif request.client:
        ip_address = request.client.host
    else:
        ip_address = None

    return ViewMetadata(
        ip_address=ip_address or None,
        user_agent=headers.get("user-agent"),
        referrer=headers.get("referer"),
        country=headers.get(settings.COUNTRY_HEADER) or None,
        city=headers.get(settings.CITY_HEADER) or None,
    )
