"""Utility modules."""

from app.utils.file_upload import content_length_exceeds_limit, get_upload_file_size
from app.utils.pagination import PaginationParams, get_pagination

__all__ = [
    # Uploads
    "content_length_exceeds_limit",
    "get_upload_file_size",
    # Pagination
    "PaginationParams",
    "get_pagination",
]
