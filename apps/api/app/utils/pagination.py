"""Pagination utilities for list endpoints."""

from dataclasses import dataclass

from fastapi import Query


# Pagination limits
DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass
class PaginationParams:
    """Pagination parameters from query string."""
    page: int
    per_page: int

    def pages(self, total: int) -> int:
        """Number of pages needed for `total` items."""
        if self.per_page <= 0:
            return 0
        return (total + self.per_page - 1) // self.per_page


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(
        DEFAULT_PER_PAGE,
        ge=1,
        le=MAX_PER_PAGE,
        alias="limit",
        description=f"Items per page (max {MAX_PER_PAGE})",
    ),
) -> PaginationParams:
    """
    Pagination dependency (`?page=&limit=`).

    Usage:
        @router.get("/inspections")
        def list_items(pagination: PaginationParams = Depends(get_pagination)):
            ...
    """
    return PaginationParams(page=page, per_page=per_page)
