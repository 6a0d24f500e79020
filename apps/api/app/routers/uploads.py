"""Photo upload endpoint."""

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.deps import get_current_session, require_csrf_header
from app.core.rate_limit import UPLOAD_LIMIT, limiter
from app.schemas.auth import UserSession
from app.schemas.upload import UploadRead
from app.services import upload_service
from app.services.storage_service import (
    LocalStorageBackend,
    StorageBackend,
    StorageError,
    get_storage_backend,
)
from app.services.upload_service import UploadValidationError
from app.utils.file_upload import content_length_exceeds_limit, get_upload_file_size

router = APIRouter()


@router.post(
    "",
    response_model=UploadRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(UPLOAD_LIMIT)
async def upload_photo(
    request: Request,
    file: UploadFile = File(...),
    session: UserSession = Depends(get_current_session),
    storage: StorageBackend = Depends(get_storage_backend),
):
    """
    Upload one inspection photo.

    The image is re-encoded as JPEG (max 1920px) before it is stored; the
    returned URL goes into the form's photo list.
    """
    max_size = settings.UPLOAD_MAX_FILE_SIZE_BYTES
    if content_length_exceeds_limit(request.headers.get("content-length"), max_size_bytes=max_size):
        raise HTTPException(status_code=413, detail="File too large")

    size = await get_upload_file_size(file)
    try:
        upload_service.validate_upload(file.content_type, size)
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    data = await file.read()
    try:
        # Re-encoding and the storage call are blocking
        result = await run_in_threadpool(
            upload_service.upload_inspection_photo,
            storage,
            data,
            file.content_type,
            session.email,
        )
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=f"Storage error: {e}")
    return result


@router.get("/files/{file_id:path}")
def download_local_photo(
    file_id: str,
    session: UserSession = Depends(get_current_session),
    storage: StorageBackend = Depends(get_storage_backend),
):
    """Serve photos kept by the local storage backend."""
    if not isinstance(storage, LocalStorageBackend):
        raise HTTPException(status_code=404, detail="File not found")
    try:
        path = storage.local_path(file_id)
    except StorageError:
        path = None
    if path is None:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path, media_type="image/jpeg")
