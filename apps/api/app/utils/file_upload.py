"""Helpers for upload size checks before the body is read."""

from __future__ import annotations

from os import SEEK_END

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool


# Multipart boundaries and part headers on top of the file bytes
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def content_length_exceeds_limit(
    content_length_header: str | None,
    *,
    max_size_bytes: int,
    overhead_bytes: int = MULTIPART_OVERHEAD_BYTES,
) -> bool:
    """True when the request Content-Length is already past the file cap."""
    if not content_length_header:
        return False
    try:
        content_length = int(content_length_header)
    except (TypeError, ValueError):
        return False
    return content_length > (max_size_bytes + overhead_bytes)


async def get_upload_file_size(file: UploadFile) -> int:
    """Size of the spooled upload, measured by seeking instead of reading."""

    def _measure() -> int:
        stream = file.file
        position = stream.tell()
        try:
            return stream.seek(0, SEEK_END)
        finally:
            stream.seek(position)

    return await run_in_threadpool(_measure)
