"""
View analytics: recording page views and aggregating them.

Usage:
    recorder = ViewRecorder(database)
    background_tasks.add_task(recorder.record_detached, EntityType.BLOG, blog.id, metadata)

    with database.session() as db:
        summary = AnalyticsService(db).get_summary()
"""

from portfolio.analytics.schemas import (
    EntityType,
    ViewMetadata,
    TopItem,
    AnalyticsSummary,
    DailyViews,
    ReferrerCount,
    CountryCount,
)
from portfolio.analytics.recorder import ViewRecorder, extract_view_metadata
from portfolio.analytics.aggregator import AnalyticsService, DEFAULT_RETENTION_DAYS

__all__ = [
    "EntityType",
    "ViewMetadata",
    "TopItem",
    "AnalyticsSummary",
    "DailyViews",
    "ReferrerCount",
    "CountryCount",
    "ViewRecorder",
    "extract_view_metadata",
    "AnalyticsService",
    "DEFAULT_RETENTION_DAYS",
]
