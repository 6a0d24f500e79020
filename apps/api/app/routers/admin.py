"""Admin endpoints: user approval, all-inspections view and reports."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_roles
from app.db.enums import ROLES_CAN_MANAGE_USERS, InspectionStatus, Role
from app.schemas.auth import UserSession
from app.schemas.inspection import InspectionListItem, InspectionListResponse
from app.schemas.report import ReportSummary
from app.schemas.user import UserRead, UserRejectRequest
from app.services import inspection_service, report_service, user_service
from app.services.user_service import UserNotFoundError, UserStateError
from app.utils.pagination import PaginationParams, get_pagination

router = APIRouter(prefix="/admin", tags=["admin"])

require_admin = require_roles(list(ROLES_CAN_MANAGE_USERS))


# =============================================================================
# Users
# =============================================================================


@router.get("/users", response_model=list[UserRead])
def list_users(
    role: Role | None = None,
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """List users; pending approvals come first."""
    return user_service.list_users(db, role=role)


@router.post(
    "/users/{user_id}/approve",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def approve_user(
    user_id: UUID,
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return user_service.approve_user(db, session, user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")


@router.post(
    "/users/{user_id}/reject",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def reject_user(
    user_id: UUID,
    data: UserRejectRequest | None = None,
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return user_service.reject_user(db, session, user_id, reason=data.reason if data else None)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except UserStateError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/users/{user_id}/toggle-role",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def toggle_user_role(
    user_id: UUID,
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Switch a user between USER and ADMIN."""
    try:
        return user_service.toggle_role(db, session, user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except UserStateError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# Inspections & reports
# =============================================================================


@router.get("/inspections", response_model=InspectionListResponse)
def list_all_inspections(
    status_filter: InspectionStatus | None = Query(None, alias="status"),
    user_id: UUID | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Every inspection, newest first."""
    items, total = inspection_service.list_all_inspections(
        db,
        status=status_filter,
        user_id=user_id,
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


@router.get("/reports/summary", response_model=ReportSummary)
def report_summary(
    days: int = Query(30, ge=1, le=365),
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return report_service.get_summary(db, days=days)
