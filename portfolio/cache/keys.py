"""
Cache key construction.

Collections: <entity>:list:<page>:<limit>:<filter flags>
Single items: <entity>:<slug or id>
Every parameter that changes a response body must appear in its key.
"""

from typing import Optional

ANALYTICS_SUMMARY = "analytics:summary"

PROJECTS_NAMESPACE = "projects"
BLOGS_NAMESPACE = "blogs"
SKILLS_NAMESPACE = "skills"


def _flag(value: bool) -> str:
    return "true" if value else "false"


def list_pattern(namespace: str) -> str:
    """Pattern matching every cached list page of a namespace."""
    return f"{namespace}:*"


def project_list_key(page: int, limit: int, featured: bool) -> str:
    return f"{PROJECTS_NAMESPACE}:list:{page}:{limit}:{_flag(featured)}"


def project_key(project_id) -> str:
    return f"project:{project_id}"


def blog_list_key(page: int, limit: int, published: bool) -> str:
    return f"{BLOGS_NAMESPACE}:list:{page}:{limit}:{_flag(published)}"


def blog_key(slug: str) -> str:
    return f"blog:{slug}"


def skills_list_key(category: Optional[str] = None) -> str:
    """The grouped listing and a category filter never share a key."""
    if not category:
        return f"{SKILLS_NAMESPACE}:list:grouped"
    return f"{SKILLS_NAMESPACE}:list:category:{category}"
