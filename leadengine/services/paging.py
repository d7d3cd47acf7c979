"""
Page/limit handling shared by the list endpoints.
"""
import math
from typing import Tuple

from leadengine.schemas.job import Pagination

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def clamp_paging(page: int, limit: int) -> Tuple[int, int]:
    """Page is at least 1; limit is clamped to 1..MAX_PAGE_SIZE."""
    page = max(1, int(page or 1))
    limit = int(limit or DEFAULT_PAGE_SIZE)
    return page, min(max(limit, 1), MAX_PAGE_SIZE)


def page_info(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if total else 0
    return Pagination(
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )
