"""
Portfolio Database Layer

Usage:
    from portfolio.database import Database, Project, Blog, ViewEvent

    database = Database(settings.database_url)
    database.create_all()

    with database.session() as db:
        db.add(Project(title="...", description="..."))
"""

from .models import Base, Project, Blog, Skill, ViewEvent, utcnow
from .session import Database, create_db_engine

__all__ = [
    "Base",
    "Project",
    "Blog",
    "Skill",
    "ViewEvent",
    "utcnow",
    "Database",
    "create_db_engine",
]
