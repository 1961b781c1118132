"""Shared utilities: settings, errors, pagination, slugs."""

from .config import Settings, get_settings
from .errors import (
    AppError,
    BadRequestError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
)
from .pagination import PaginationParams, get_pagination_params, calculate_pagination
from .slugify import generate_slug, ensure_unique_slug, calculate_read_time

__all__ = [
    "Settings",
    "get_settings",
    "AppError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "PaginationParams",
    "get_pagination_params",
    "calculate_pagination",
    "generate_slug",
    "ensure_unique_slug",
    "calculate_read_time",
]
