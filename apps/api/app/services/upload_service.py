"""Inspection photo uploads: validation, re-encoding and storage."""

from __future__ import annotations

import logging
import re
import secrets
import string
import time
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from app.core.config import settings
from app.services.storage_service import StorageBackend, UploadResult

logger = logging.getLogger(__name__)

JPEG_MIME_TYPE = "image/jpeg"
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits
_UNSAFE_FOLDER_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class UploadServiceError(Exception):
    """Base exception for upload errors."""

    pass


class UploadValidationError(UploadServiceError):
    """File rejected before storage (type, size or undecodable image)."""

    pass


def validate_upload(content_type: str | None, size: int) -> None:
    """Accept image/* only, up to UPLOAD_MAX_FILE_SIZE_BYTES."""
    if not content_type or not content_type.lower().startswith("image/"):
        raise UploadValidationError("Only image files are allowed")
    if size <= 0:
        raise UploadValidationError("File is empty")
    if size > settings.UPLOAD_MAX_FILE_SIZE_BYTES:
        max_mb = settings.UPLOAD_MAX_FILE_SIZE_BYTES // (1024 * 1024)
        raise UploadValidationError(f"File too large. Maximum {max_mb}MB")


def compress_image(
    data: bytes,
    max_dimension: int | None = None,
    quality: int | None = None,
) -> bytes:
    """
    Re-encode an image as progressive JPEG that fits inside max_dimension.

    Orientation from EXIF is applied to the pixels, then all metadata is
    dropped. Smaller images are never enlarged.
    """
    max_dimension = max_dimension or settings.UPLOAD_MAX_DIMENSION
    quality = quality or settings.UPLOAD_JPEG_QUALITY

    try:
        with Image.open(BytesIO(data)) as image:
            image.load()
            image = ImageOps.exif_transpose(image)
            if image.mode in ("RGBA", "LA", "P"):
                image = image.convert("RGBA")
                background = Image.new("RGB", image.size, (255, 255, 255))
                background.paste(image, mask=image.getchannel("A"))
                image = background
            elif image.mode != "RGB":
                image = image.convert("RGB")

            image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

            output = BytesIO()
            image.save(output, format="JPEG", quality=quality, optimize=True, progressive=True)
    except (UnidentifiedImageError, OSError) as e:
        raise UploadValidationError("File is not a valid image") from e

    return output.getvalue()


def generate_file_name() -> str:
    """IMG_<epoch millis>_<6 random chars>.jpg"""
    suffix = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    return f"IMG_{int(time.time() * 1000)}_{suffix}.jpg"


def user_upload_folder(email: str | None) -> str:
    local_part = (email or "").split("@")[0]
    local_part = _UNSAFE_FOLDER_CHARS.sub("_", local_part).strip("._")
    return f"temp/{local_part or 'anon'}"


def upload_inspection_photo(
    storage: StorageBackend,
    data: bytes,
    content_type: str | None,
    user_email: str | None,
) -> UploadResult:
    """Validate, re-encode and store one photo; returns the stored object."""
    validate_upload(content_type, len(data))
    compressed = compress_image(data)
    file_name = generate_file_name()

    result = storage.upload(
        compressed,
        file_name,
        folder=user_upload_folder(user_email),
        mime_type=JPEG_MIME_TYPE,
    )
    logger.info(
        f"Uploaded {file_name} via {storage.name}: {len(data)} -> {len(compressed)} bytes"
    )
    return UploadResult(
        url=result.url,
        file_name=result.file_name,
        file_id=result.file_id,
        size=len(compressed),
        original_size=len(data),
    )
