import math

from pydantic import Field

from commentbox.core.db import ViewModel

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class Pagination(ViewModel):
    """Page-number pagination block for list endpoints."""

    current_page: int = Field(..., description="Requested page number (1-based)", ge=1)
    total_pages: int = Field(..., description="Number of pages for the filtered result", ge=0)
    total_comments: int = Field(..., description="Number of items matching the filter", ge=0)
    has_next_page: bool = Field(..., description="Whether a page after the current one exists")
    has_prev_page: bool = Field(..., description="Whether a page before the current one exists")

    @classmethod
    def from_total(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit)
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_comments=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


def page_offset(page: int, limit: int) -> int:
    """Number of items to skip to reach the start of `page`."""
    return (page - 1) * limit
