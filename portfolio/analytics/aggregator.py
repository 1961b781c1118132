"""
Analytics Aggregator

Read-only rollups over view_events, plus the retention sweep.

All store errors propagate: these back admin diagnostic endpoints, where a
failed query should surface rather than be papered over.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Type, Union
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from portfolio.analytics.schemas import (
    AnalyticsSummary,
    CountryCount,
    DailyViews,
    EntityType,
    ReferrerCount,
    TopItem,
)
from portfolio.database import Blog, Project, ViewEvent, utcnow

logger = logging.getLogger(__name__)

TOP_CONTENT_LIMIT = 10
DEFAULT_RETENTION_DAYS = 90


def _as_date(value) -> date:
    """func.date() yields a date on PostgreSQL and an ISO string on SQLite."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class AnalyticsService:
    """Computes view statistics from a database session."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Summary
    # =========================================================================

    def _top_groups(self, column) -> List[tuple]:
        """(entity_id, count) for the top 10 ids by view count."""
        count = func.count(ViewEvent.id).label("views")
        stmt = (
            select(column, count)
            .where(column.is_not(None))
            .group_by(column)
            .order_by(count.desc(), column)
            .limit(TOP_CONTENT_LIMIT)
        )
        return [(row[0], row[1]) for row in self.db.execute(stmt)]

    def _resolve_titles(self, model: Type[Union[Project, Blog]], ids: List[UUID]) -> Dict[UUID, str]:
        """One batch lookup; missing and soft-deleted rows are absent from the result."""
        if not ids:
            return {}
        stmt = select(model.id, model.title).where(
            model.id.in_(ids),
            model.deleted_at.is_(None),
        )
        return {row.id: row.title for row in self.db.execute(stmt)}

    def _top_items(self, groups: List[tuple], titles: Dict[UUID, str]) -> List[TopItem]:
        return [
            TopItem(id=entity_id, title=titles[entity_id], views=views)
            for entity_id, views in groups
            if entity_id in titles
        ]

    def get_summary(self) -> AnalyticsSummary:
        """
        Top 10 projects and blogs by views, plus totals.

        Groups whose entity has been deleted are dropped from the top lists
        but still count toward project_views/blog_views, which are sums over
        the top-10 groups rather than true per-type totals.
        """
        project_groups = self._top_groups(ViewEvent.project_id)
        blog_groups = self._top_groups(ViewEvent.blog_id)

        project_titles = self._resolve_titles(Project, [g[0] for g in project_groups])
        blog_titles = self._resolve_titles(Blog, [g[0] for g in blog_groups])

        total_views = self.db.scalar(select(func.count(ViewEvent.id))) or 0

        return AnalyticsSummary(
            top_projects=self._top_items(project_groups, project_titles),
            top_blogs=self._top_items(blog_groups, blog_titles),
            total_views=total_views,
            project_views=sum(views for _, views in project_groups),
            blog_views=sum(views for _, views in blog_groups),
        )

    # =========================================================================
    # Per-entity counts
    # =========================================================================

    def get_project_views(self, project_id: UUID) -> int:
        stmt = select(func.count(ViewEvent.id)).where(ViewEvent.project_id == project_id)
        return self.db.scalar(stmt) or 0

    def get_blog_views(self, blog_id: UUID) -> int:
        stmt = select(func.count(ViewEvent.id)).where(ViewEvent.blog_id == blog_id)
        return self.db.scalar(stmt) or 0

    def get_views_by_date_range(
        self,
        entity_type: Union[EntityType, str],
        entity_id: UUID,
        start: datetime,
        end: datetime,
    ) -> List[DailyViews]:
        """
        Daily view counts for one entity within [start, end], ascending.

        Days without views are omitted rather than zero-filled.
        """
        entity_type = EntityType(entity_type)
        column = ViewEvent.project_id if entity_type == EntityType.PROJECT else ViewEvent.blog_id

        day = func.date(ViewEvent.created_at).label("day")
        stmt = (
            select(day, func.count(ViewEvent.id).label("views"))
            .where(
                column == entity_id,
                ViewEvent.created_at >= start,
                ViewEvent.created_at <= end,
            )
            .group_by(day)
            .order_by(day)
        )

        results = [
            DailyViews(date=_as_date(row.day), views=row.views)
            for row in self.db.execute(stmt)
        ]
        results.sort(key=lambda item: item.date)
        return results

    # =========================================================================
    # Breakdowns
    # =========================================================================

    def _top_values(self, column, limit: int) -> List[tuple]:
        count = func.count(ViewEvent.id).label("count")
        stmt = (
            select(column, count)
            .where(column.is_not(None))
            .group_by(column)
            .order_by(count.desc(), column)
            .limit(limit)
        )
        return [(row[0], row[1]) for row in self.db.execute(stmt)]

    def get_top_referrers(self, limit: int = 10) -> List[ReferrerCount]:
        return [
            ReferrerCount(referrer=referrer, count=count)
            for referrer, count in self._top_values(ViewEvent.referrer, limit)
        ]

    def get_top_countries(self, limit: int = 10) -> List[CountryCount]:
        return [
            CountryCount(country=country, count=count)
            for country, count in self._top_values(ViewEvent.country, limit)
        ]

    # =========================================================================
    # Retention
    # =========================================================================

    def _cutoff(self, days_to_keep: int) -> datetime:
        return utcnow() - timedelta(days=days_to_keep)

    def count_old_view_events(self, days_to_keep: int = DEFAULT_RETENTION_DAYS) -> int:
        stmt = select(func.count(ViewEvent.id)).where(ViewEvent.created_at < self._cutoff(days_to_keep))
        return self.db.scalar(stmt) or 0

    def delete_old_view_events(self, days_to_keep: int = DEFAULT_RETENTION_DAYS) -> int:
        """
        Delete view events older than now - days_to_keep. Returns rows deleted.

        The caller owns the transaction; re-running with nothing eligible
        returns 0.
        """
        cutoff = self._cutoff(days_to_keep)
        result = self.db.execute(
            delete(ViewEvent)
            .where(ViewEvent.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} view events older than {cutoff.isoformat()}")
        return deleted
