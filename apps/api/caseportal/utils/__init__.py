"""Utility modules."""

from caseportal.utils.pagination import (
    PaginatedResponse,
    PaginationParams,
    get_pagination,
    paginate_query,
)

__all__ = [
    "PaginationParams",
    "PaginatedResponse",
    "get_pagination",
    "paginate_query",
]
