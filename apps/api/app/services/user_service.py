"""User administration: approval workflow and role changes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.enums import Role
from app.db.models import User
from app.schemas.auth import UserSession

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base exception for user administration errors."""

    pass


class UserNotFoundError(UserServiceError):
    """User not found."""

    pass


class UserStateError(UserServiceError):
    """The user is not in a state that allows this change."""

    pass


def list_users(db: Session, role: Role | None = None) -> list[User]:
    """List users, pending approvals first, then by creation date."""
    query = select(User)
    if role:
        query = query.where(User.role == role.value)
    query = query.order_by((User.role == Role.PENDING.value).desc(), User.created_at.desc())
    return list(db.execute(query).scalars().all())


def get_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


def approve_user(db: Session, session: UserSession, user_id: UUID) -> User:
    """Grant access: PENDING (or previously rejected) users become USER."""
    user = get_user(db, user_id)
    if user.role == Role.PENDING.value:
        user.role = Role.USER.value
    user.is_active = True
    user.approved_by = session.user_id
    user.approved_at = datetime.now(timezone.utc)
    user.rejected_by = None
    user.rejected_at = None
    user.rejection_reason = None
    user.token_version += 1

    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} approved by {session.user_id}")
    return user


def reject_user(
    db: Session,
    session: UserSession,
    user_id: UUID,
    reason: str | None = None,
) -> User:
    """Deny access: stamp the rejection and deactivate the account."""
    user = get_user(db, user_id)
    if user.id == session.user_id:
        raise UserStateError("You cannot reject your own account")

    user.rejected_by = session.user_id
    user.rejected_at = datetime.now(timezone.utc)
    user.rejection_reason = reason.strip() if reason else None
    user.approved_by = None
    user.approved_at = None
    user.is_active = False
    user.token_version += 1

    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} rejected by {session.user_id}")
    return user


def toggle_role(db: Session, session: UserSession, user_id: UUID) -> User:
    """Switch an approved user between USER and ADMIN."""
    user = get_user(db, user_id)
    if user.id == session.user_id:
        raise UserStateError("You cannot change your own role")
    if user.role == Role.PENDING.value:
        raise UserStateError("Approve the user before changing their role")

    previous = user.role
    user.role = Role.USER.value if previous == Role.ADMIN.value else Role.ADMIN.value
    user.token_version += 1

    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} role changed {previous} -> {user.role} by {session.user_id}")
    return user
