"""
Analytics data shapes.

ViewMetadata travels from the HTTP layer to the recorder; the rest are
aggregator results, serialized with camelCase aliases for the API.
"""

import datetime as dt
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EntityType(str, Enum):
    PROJECT = "project"
    BLOG = "blog"


class ViewMetadata(BaseModel):
    """Request metadata recorded with a view. All fields optional."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TopItem(_ApiModel):
    id: UUID
    title: str
    views: int


class AnalyticsSummary(_ApiModel):
    """
    Snapshot of view rollups.

    project_views/blog_views sum the counts of the top-10 groups only, not all
    views of that entity type.
    """
    top_projects: List[TopItem] = Field(default_factory=list, alias="topProjects")
    top_blogs: List[TopItem] = Field(default_factory=list, alias="topBlogs")
    total_views: int = Field(0, alias="totalViews")
    project_views: int = Field(0, alias="projectViews")
    blog_views: int = Field(0, alias="blogViews")


class DailyViews(_ApiModel):
    date: dt.date
    views: int


class ReferrerCount(_ApiModel):
    referrer: str
    count: int


class CountryCount(_ApiModel):
    country: str
    count: int
