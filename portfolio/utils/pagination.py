"""Page/limit parsing and pagination metadata."""

import math
from dataclasses import dataclass
from typing import Dict, Optional

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class PaginationParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _to_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def get_pagination_params(page: Optional[str] = None, limit: Optional[str] = None) -> PaginationParams:
    """Clamp raw query values: page >= 1, 1 <= limit <= 100."""
    page_num = max(1, _to_int(page, 1))
    limit_num = min(MAX_LIMIT, max(1, _to_int(limit, DEFAULT_LIMIT)))
    return PaginationParams(page=page_num, limit=limit_num)


def calculate_pagination(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }
