"""
SQLAlchemy Models for the Portfolio Backend

Content tables (projects, blogs, skills) are soft-deleted via deleted_at,
except skills which are removed outright. view_events is append-only: rows are
inserted by the view recorder and bulk-deleted by the retention sweep.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text,
    ForeignKey, Index, CheckConstraint, JSON, Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (all DateTime columns store UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# CONTENT TABLES
# =============================================================================

class Project(Base):
    """Portfolio project"""
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    tags = Column(JSON, default=list)
    stack = Column(JSON, default=list)
    image_url = Column(String(2000))
    github_url = Column(String(2000))
    live_url = Column(String(2000))
    featured = Column(Boolean, default=False, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    view_events = relationship("ViewEvent", back_populates="project", passive_deletes=True)

    __table_args__ = (
        Index("idx_project_featured_order", "featured", "order"),
    )


class Blog(Base):
    """Blog post, addressed publicly by slug"""
    __tablename__ = "blogs"

    id = Column(Uuid, primary_key=True, default=uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text)
    tags = Column(JSON, default=list)
    image_url = Column(String(2000))
    published = Column(Boolean, default=False, nullable=False)
    published_at = Column(DateTime)
    read_time = Column(Integer)

    # Denormalized counter, bumped by the view recorder
    views = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    view_events = relationship("ViewEvent", back_populates="blog", passive_deletes=True)

    __table_args__ = (
        Index("idx_blog_published_created", "published", "created_at"),
    )


class Skill(Base):
    """Skill entry, listed grouped by category"""
    __tablename__ = "skills"

    id = Column(Uuid, primary_key=True, default=uuid4)
    category = Column(String(100), nullable=False)
    name = Column(String(100), nullable=False)
    icon_url = Column(String(2000))
    level = Column(Integer, default=0, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_skill_category_order", "category", "order"),
    )


# =============================================================================
# VIEW ANALYTICS
# =============================================================================

class ViewEvent(Base):
    """One tracked page view of a project or a blog post"""
    __tablename__ = "view_events"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True)
    blog_id = Column(Uuid, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=True)

    # Request metadata
    ip_address = Column(String(64))
    user_agent = Column(String(1000))
    referrer = Column(String(2000))
    country = Column(String(100))
    city = Column(String(100))

    created_at = Column(DateTime, default=utcnow, nullable=False)

    project = relationship("Project", back_populates="view_events")
    blog = relationship("Blog", back_populates="view_events")

    __table_args__ = (
        CheckConstraint(
            "(project_id IS NULL) <> (blog_id IS NULL)",
            name="ck_view_event_single_target",
        ),
        Index("idx_view_event_project", "project_id"),
        Index("idx_view_event_blog", "blog_id"),
        Index("idx_view_event_created", "created_at"),
    )

    def __repr__(self):
        target = f"project={self.project_id}" if self.project_id else f"blog={self.blog_id}"
        return f"<ViewEvent {target} at {self.created_at}>"
