"""Offset pagination over in-memory result sets."""

import math
from collections.abc import Sequence
from typing import TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Rows per driver page when walking a whole lookup table
LISTING_PAGE_SIZE = 500


class PaginationMeta(BaseModel):
    """Pagination metadata returned with list responses."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


def paginate(items: Sequence[T], page: int, limit: int) -> tuple[list[T], PaginationMeta]:
    """Slice ``items`` for the requested page.

    Args:
        items: Full, already filtered and ordered result set
        page: 1-based page number
        limit: Page size

    Returns:
        Tuple of (page items, pagination metadata)
    """
    page = max(page, 1)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    total = len(items)
    start = (page - 1) * limit
    meta = PaginationMeta(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )
    return list(items[start : start + limit]), meta
