"""Inspection checklist API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.core.deps import get_current_session, get_db, require_csrf_header
from app.db.enums import InspectionStatus
from app.schemas.auth import UserSession
from app.schemas.inspection import (
    InspectionAutosave,
    InspectionFormRead,
    InspectionListItem,
    InspectionListResponse,
    InspectionPayload,
    InspectionRead,
    InspectionWriteResponse,
    MappingGapRead,
)
from app.services import inspection_service
from app.services.inspection_service import (
    InspectionNotFoundError,
    InspectionOwnershipError,
    InspectionServiceError,
    InspectionStateError,
    InspectionTransactionError,
    InspectionValidationError,
    InspectionWriteResult,
)
from app.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


def to_http_exception(e: InspectionServiceError) -> HTTPException:
    """Translate inspection service errors into API responses."""
    if isinstance(e, InspectionValidationError):
        return HTTPException(
            status_code=400,
            detail={"error": "Validation failed", "details": e.errors},
        )
    if isinstance(e, InspectionNotFoundError):
        return HTTPException(status_code=404, detail="Inspection not found")
    if isinstance(e, InspectionOwnershipError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, InspectionStateError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InspectionTransactionError):
        return HTTPException(status_code=500, detail=str(e))
    return HTTPException(status_code=500, detail="Inspection error")


def _write_response(result: InspectionWriteResult) -> InspectionWriteResponse:
    return InspectionWriteResponse(
        inspection=InspectionRead.model_validate(result.inspection),
        mapping_gaps=[MappingGapRead(**gap.to_dict()) for gap in result.mapping_gaps],
    )


@router.get("", response_model=InspectionListResponse)
def list_inspections(
    status_filter: InspectionStatus | None = Query(None, alias="status"),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List the current user's inspections, newest first."""
    items, total = inspection_service.list_inspections(
        db,
        session,
        status=status_filter,
        page=pagination.page,
        per_page=pagination.per_page,
    )
    return InspectionListResponse(
        items=[InspectionListItem.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages(total),
    )


@router.post(
    "",
    response_model=InspectionWriteResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_inspection(
    data: InspectionPayload,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Create a draft, or create and submit in one step (status=SUBMITTED)."""
    try:
        result = inspection_service.create_inspection(db, session, data)
    except InspectionServiceError as e:
        raise to_http_exception(e)
    return _write_response(result)


@router.get("/{inspection_id}", response_model=InspectionRead)
def get_inspection(
    inspection_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Get inspection detail with responses, images and history."""
    try:
        inspection = inspection_service.get_inspection_for_session(db, session, inspection_id)
    except InspectionServiceError as e:
        raise to_http_exception(e)
    return inspection


@router.get("/{inspection_id}/form", response_model=InspectionFormRead)
def get_inspection_form(
    inspection_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Nested form data for edit mode."""
    try:
        hydrated = inspection_service.hydrate_form(db, session, inspection_id)
    except InspectionServiceError as e:
        raise to_http_exception(e)
    return InspectionFormRead(
        id=hydrated.inspection.id,
        status=hydrated.inspection.status,
        title=hydrated.inspection.title,
        location=hydrated.location,
        form_data=hydrated.form_data,
        mapping_gaps=[MappingGapRead(**gap.to_dict()) for gap in hydrated.mapping_gaps],
    )


@router.put(
    "/{inspection_id}",
    response_model=InspectionWriteResponse,
    dependencies=[Depends(require_csrf_header)],
)
def replace_inspection(
    inspection_id: UUID,
    data: InspectionPayload,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Replace all answers and photos of an inspection."""
    try:
        result = inspection_service.replace_inspection(db, session, inspection_id, data)
    except InspectionServiceError as e:
        raise to_http_exception(e)
    return _write_response(result)


@router.patch(
    "/{inspection_id}",
    response_model=InspectionListItem,
    dependencies=[Depends(require_csrf_header)],
)
def autosave_inspection(
    inspection_id: UUID,
    data: InspectionAutosave,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Autosave title/location of a draft. Answers are not touched."""
    try:
        return inspection_service.autosave_inspection(db, session, inspection_id, data)
    except InspectionServiceError as e:
        raise to_http_exception(e)


@router.delete(
    "/{inspection_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_inspection(
    inspection_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Delete a draft."""
    try:
        inspection_service.delete_inspection(db, session, inspection_id)
    except InspectionServiceError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
