#!/usr/bin/env python3
"""
View Event Retention Job

Deletes view_events rows older than the retention window and drops the
cached analytics summary so the next read reflects the purge.

Usage:
    # Uses DATABASE_URL / REDIS_URL from the environment (or .env):
    python scripts/cleanup_views.py

    # Keep 30 days instead of VIEW_RETENTION_DAYS:
    python scripts/cleanup_views.py --days 30

    # Only count what would be deleted:
    python scripts/cleanup_views.py --dry-run
"""

import asyncio
import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from portfolio.analytics import AnalyticsService
from portfolio.cache import CacheConfig, CacheEvent, CacheInvalidator, RedisCache
from portfolio.database import Database
from portfolio.utils.config import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def run_cleanup(days: int = None, dry_run: bool = False) -> int:
    """Run the retention sweep. Returns rows deleted (or eligible, on a dry run)."""
    load_dotenv()
    settings = get_settings()
    days_to_keep = days if days is not None else settings.VIEW_RETENTION_DAYS

    database = Database(settings.database_url, echo=settings.SQL_DEBUG)
    try:
        with database.session() as db:
            service = AnalyticsService(db)
            if dry_run:
                count = service.count_old_view_events(days_to_keep)
                logger.info(f"[dry run] {count} view events older than {days_to_keep} days")
                return count
            count = service.delete_old_view_events(days_to_keep)
    finally:
        database.dispose()

    cache = RedisCache(CacheConfig(redis_url=settings.REDIS_URL, redis_password=settings.REDIS_PASSWORD))
    try:
        await CacheInvalidator(cache).handle_event(CacheEvent.VIEWS_PURGED)
    finally:
        await cache.close()

    logger.info(f"Retention sweep complete: {count} view events deleted")
    return count


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Delete view analytics events older than the retention window"
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Days of view events to keep (default: VIEW_RETENTION_DAYS, 90)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count eligible events without deleting"
    )

    args = parser.parse_args()
    if args.days is not None and args.days < 1:
        parser.error("--days must be at least 1")

    count = asyncio.run(run_cleanup(days=args.days, dry_run=args.dry_run))
    print(f"\n{'Eligible' if args.dry_run else 'Deleted'}: {count} view events")


if __name__ == "__main__":
    main()
