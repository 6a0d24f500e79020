"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator

import jwt
from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.security import decode_session_token
from app.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "inspection_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get authenticated user from session cookie.

    Validates:
    - Session cookie exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    # Import here to avoid circular imports
    from app.db.models import User
    from app.schemas.auth import TokenPayload

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid session")

    try:
        claims = TokenPayload.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == claims.sub).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Token version check (revocation support)
    if user.token_version != claims.token_version:
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def get_current_session(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get full session context: user_id, role, email.

    This is the PRIMARY auth dependency for most endpoints.
    Pending (not yet approved) accounts are rejected here.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Pending approval or unknown role
    """
    # Import here to avoid circular imports
    from app.db.enums import ROLES_APPROVED, Role
    from app.schemas.auth import UserSession

    user = get_current_user(request, db)

    # Validate role is a known enum value - return 403 not 500
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator."
        )

    role = Role(user.role)
    if role not in ROLES_APPROVED:
        raise HTTPException(status_code=403, detail="Account pending approval")

    return UserSession(
        user_id=user.id,
        role=role,
        email=user.email,
        display_name=user.name,
    )


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Uses enum values (not strings) to prevent drift.

    Usage:
        @router.get("/admin/users", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action"
            )
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )


# =============================================================================
# Permission Check Helpers (use enum sets from db.enums)
# =============================================================================

def can_edit_submitted(session) -> bool:
    """Check if user can edit an inspection after submission."""
    from app.db.enums import ROLES_CAN_EDIT_SUBMITTED
    return session.role in ROLES_CAN_EDIT_SUBMITTED


def can_view_all_inspections(session) -> bool:
    """Check if user can read inspections owned by others."""
    from app.db.enums import ROLES_CAN_VIEW_ALL_INSPECTIONS
    return session.role in ROLES_CAN_VIEW_ALL_INSPECTIONS


def is_owner_or_admin(session, owner_user_id) -> bool:
    """Check if user owns the record OR can view everything."""
    return session.user_id == owner_user_id or can_view_all_inspections(session)
