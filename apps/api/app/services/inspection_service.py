"""Inspection lifecycle: create, replace, autosave, delete and hydrate.

Every full save maps the form to rows up front, then runs a single
transaction that deletes and re-inserts all responses and images together
with an audit log entry. Partial writes are never visible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, insert, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import can_edit_submitted, is_owner_or_admin
from app.core.structured_logging import build_log_context
from app.db.enums import InspectionLogAction, InspectionStatus
from app.db.models import (
    Inspection,
    InspectionImage,
    InspectionLog,
    InspectionResponse,
)
from app.schemas.auth import UserSession
from app.schemas.inspection import InspectionAutosave, InspectionPayload, LocationPayload
from app.services import notification_service
from app.services.inspection_validation import validate_submission
from app.services.response_mapper import (
    MappedImage,
    MappedResponse,
    MappingGap,
    deduplicate_responses,
    map_form_to_records,
    map_records_to_form,
)

logger = logging.getLogger(__name__)


class InspectionServiceError(Exception):
    """Base exception for inspection service errors."""

    pass


class InspectionNotFoundError(InspectionServiceError):
    """Inspection not found."""

    pass


class InspectionValidationError(InspectionServiceError):
    """Submitted form failed full validation."""

    def __init__(self, errors: list[dict[str, str]]):
        self.errors = errors
        super().__init__(f"Inspection form has {len(errors)} invalid field(s)")


class InspectionOwnershipError(InspectionServiceError):
    """Actor may not read or change this inspection."""

    pass


class InspectionStateError(InspectionServiceError):
    """Inspection status does not allow the requested change."""

    pass


class InspectionTransactionError(InspectionServiceError):
    """The write transaction failed and was rolled back."""

    pass


@dataclass
class InspectionWriteResult:
    inspection: Inspection
    mapping_gaps: list[MappingGap] = field(default_factory=list)


@dataclass
class HydratedForm:
    inspection: Inspection
    form_data: dict[str, dict[str, Any]]
    mapping_gaps: list[MappingGap] = field(default_factory=list)

    @property
    def location(self) -> LocationPayload | None:
        inspection = self.inspection
        if inspection.latitude is None and inspection.longitude is None and not inspection.location:
            return None
        return LocationPayload(
            latitude=inspection.latitude,
            longitude=inspection.longitude,
            address=inspection.location,
        )


# =============================================================================
# Reads
# =============================================================================


def get_inspection(db: Session, inspection_id: UUID) -> Inspection:
    """Get an inspection by id or raise InspectionNotFoundError."""
    inspection = db.get(Inspection, inspection_id)
    if not inspection:
        raise InspectionNotFoundError(f"Inspection {inspection_id} not found")
    return inspection


def get_inspection_for_session(db: Session, session: UserSession, inspection_id: UUID) -> Inspection:
    """Get an inspection the actor may read (owner or admin)."""
    inspection = get_inspection(db, inspection_id)
    if not is_owner_or_admin(session, inspection.user_id):
        raise InspectionOwnershipError("You do not have access to this inspection")
    return inspection


def list_inspections(
    db: Session,
    session: UserSession,
    status: InspectionStatus | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Inspection], int]:
    """List the actor's own inspections, newest first."""
    return _paginate(
        db,
        select(Inspection).where(Inspection.user_id == session.user_id),
        status=status,
        page=page,
        per_page=per_page,
    )


def list_all_inspections(
    db: Session,
    status: InspectionStatus | None = None,
    user_id: UUID | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Inspection], int]:
    """List every inspection (admin views), optionally for one inspector."""
    query = select(Inspection)
    if user_id:
        query = query.where(Inspection.user_id == user_id)
    return _paginate(db, query, status=status, page=page, per_page=per_page)


def _paginate(db: Session, query, status, page: int, per_page: int) -> tuple[list[Inspection], int]:
    if status:
        query = query.where(Inspection.status == InspectionStatus(status).value)
    total = db.scalar(select(func.count()).select_from(query.subquery())) or 0
    items = db.execute(
        query.order_by(Inspection.created_at.desc(), Inspection.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).scalars().all()
    return list(items), total


def hydrate_form(db: Session, session: UserSession, inspection_id: UUID) -> HydratedForm:
    """Rebuild the nested form of a stored inspection for edit mode."""
    inspection = get_inspection_for_session(db, session, inspection_id)
    mapping = map_records_to_form(inspection.responses, inspection.images)
    if mapping.gaps:
        logger.warning(
            f"Hydration of inspection {inspection.id} dropped {len(mapping.gaps)} row(s)",
            extra=build_log_context(
                user_id=str(session.user_id), inspection_id=str(inspection.id)
            ),
        )
    return HydratedForm(
        inspection=inspection,
        form_data=mapping.form_data,
        mapping_gaps=mapping.gaps,
    )


# =============================================================================
# Writes
# =============================================================================


def create_inspection(
    db: Session,
    session: UserSession,
    payload: InspectionPayload,
) -> InspectionWriteResult:
    """
    Create an inspection with all its responses and images.

    Full validation runs only when the payload is SUBMITTED; drafts are
    accepted with any subset of fields.
    """
    form_data = payload.form_data()
    submitting = payload.status == InspectionStatus.SUBMITTED.value
    if submitting:
        validate_submission(form_data)

    mapping = map_form_to_records(form_data, session.user_id)
    responses = deduplicate_responses(mapping.responses)

    now = datetime.now(timezone.utc)
    inspection = Inspection(
        user_id=session.user_id,
        status=payload.status,
        title=payload.title,
        submitted_at=now if submitting else None,
    )
    _apply_location(inspection, payload.location)

    if submitting:
        action = InspectionLogAction.SUBMITTED
        description = "Inspection created and submitted"
    else:
        action = InspectionLogAction.CREATED
        description = "Inspection draft created"

    def write() -> None:
        db.add(inspection)
        db.flush()
        _insert_rows(db, inspection.id, responses, mapping.images)
        _add_log(db, inspection, session, action, description, responses, mapping.images)

    _run_transaction(db, write, session, "create")
    db.refresh(inspection)

    logger.info(
        f"Inspection {inspection.id} created with status {inspection.status} "
        f"({len(responses)} responses, {len(mapping.images)} images)",
        extra=build_log_context(user_id=str(session.user_id), inspection_id=str(inspection.id)),
    )
    if submitting:
        notification_service.notify_inspection_submitted(db, inspection)
    return InspectionWriteResult(inspection=inspection, mapping_gaps=mapping.gaps)


def replace_inspection(
    db: Session,
    session: UserSession,
    inspection_id: UUID,
    payload: InspectionPayload,
) -> InspectionWriteResult:
    """
    Replace an inspection's fields, responses and images wholesale.

    DRAFT records are editable by their owner. SUBMITTED records are editable
    by admins only, stay SUBMITTED and are always fully validated.
    """
    inspection = get_inspection(db, inspection_id)
    _assert_can_replace(inspection, session)

    was_submitted = inspection.status == InspectionStatus.SUBMITTED.value
    target_status = InspectionStatus.SUBMITTED.value if was_submitted else payload.status
    submitting = target_status == InspectionStatus.SUBMITTED.value

    form_data = payload.form_data()
    if submitting:
        validate_submission(form_data)

    mapping = map_form_to_records(form_data, session.user_id)
    responses = deduplicate_responses(mapping.responses)

    if was_submitted:
        action = InspectionLogAction.EDITED_AFTER_SUBMIT
        description = "Inspection edited after submission"
    elif submitting:
        action = InspectionLogAction.SUBMITTED
        description = "Inspection submitted"
    else:
        action = InspectionLogAction.UPDATED
        description = "Inspection draft updated"

    def write() -> None:
        db.execute(delete(InspectionResponse).where(InspectionResponse.inspection_id == inspection.id))
        db.execute(delete(InspectionImage).where(InspectionImage.inspection_id == inspection.id))
        inspection.status = target_status
        inspection.title = payload.title
        _apply_location(inspection, payload.location)
        if submitting and not was_submitted:
            inspection.submitted_at = datetime.now(timezone.utc)
        _insert_rows(db, inspection.id, responses, mapping.images)
        _add_log(db, inspection, session, action, description, responses, mapping.images)

    _run_transaction(db, write, session, "replace")
    db.refresh(inspection)

    logger.info(
        f"Inspection {inspection.id} replaced ({action.value}, "
        f"{len(responses)} responses, {len(mapping.images)} images)",
        extra=build_log_context(user_id=str(session.user_id), inspection_id=str(inspection.id)),
    )
    if action == InspectionLogAction.SUBMITTED:
        notification_service.notify_inspection_submitted(db, inspection)
    return InspectionWriteResult(inspection=inspection, mapping_gaps=mapping.gaps)


def autosave_inspection(
    db: Session,
    session: UserSession,
    inspection_id: UUID,
    payload: InspectionAutosave,
) -> Inspection:
    """
    Persist top-level draft fields without touching responses or images.

    Never validates. Moving to SUBMITTED must go through a full save.
    """
    inspection = get_inspection(db, inspection_id)
    if inspection.user_id != session.user_id:
        raise InspectionOwnershipError("Only the owner can autosave this inspection")
    if inspection.status != InspectionStatus.DRAFT.value:
        raise InspectionStateError("Only drafts can be autosaved")
    if payload.status == InspectionStatus.SUBMITTED.value:
        raise InspectionStateError("Submitting requires a full save of the form")

    fields = payload.model_fields_set
    if "title" in fields:
        inspection.title = payload.title
    if "location" in fields:
        _apply_location(inspection, payload.location)
    if payload.status:
        inspection.status = payload.status

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Autosave failed for inspection {inspection_id}")
        raise InspectionTransactionError("Failed to autosave inspection") from e
    db.refresh(inspection)
    return inspection


def delete_inspection(db: Session, session: UserSession, inspection_id: UUID) -> None:
    """Delete a draft owned by the actor; rows and logs cascade."""
    inspection = get_inspection(db, inspection_id)
    if inspection.user_id != session.user_id:
        raise InspectionOwnershipError("Only the owner can delete this inspection")
    if inspection.status != InspectionStatus.DRAFT.value:
        raise InspectionStateError("Only drafts can be deleted")

    try:
        db.delete(inspection)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Delete failed for inspection {inspection_id}")
        raise InspectionTransactionError("Failed to delete inspection") from e

    logger.info(
        f"Inspection {inspection_id} deleted",
        extra=build_log_context(user_id=str(session.user_id), inspection_id=str(inspection_id)),
    )


# =============================================================================
# Helpers
# =============================================================================


def _assert_can_replace(inspection: Inspection, session: UserSession) -> None:
    status = inspection.status
    if status == InspectionStatus.DRAFT.value:
        if inspection.user_id != session.user_id:
            raise InspectionOwnershipError("Only the owner can edit a draft")
        return
    if status == InspectionStatus.SUBMITTED.value:
        if can_edit_submitted(session):
            return
        if inspection.user_id == session.user_id:
            raise InspectionStateError("Submitted inspections can only be edited by an administrator")
        raise InspectionOwnershipError("You do not have access to this inspection")
    raise InspectionStateError(f"Inspections in status {status} cannot be edited")


def _apply_location(inspection: Inspection, location: LocationPayload | None) -> None:
    if location is None:
        inspection.latitude = None
        inspection.longitude = None
        inspection.location = None
        return
    inspection.latitude = location.latitude
    inspection.longitude = location.longitude
    inspection.location = location.address


def _insert_rows(
    db: Session,
    inspection_id: UUID,
    responses: list[MappedResponse],
    images: list[MappedImage],
) -> None:
    if responses:
        db.execute(insert(InspectionResponse), [r.as_row(inspection_id) for r in responses])
    if images:
        db.execute(insert(InspectionImage), [i.as_row(inspection_id) for i in images])


def _add_log(
    db: Session,
    inspection: Inspection,
    session: UserSession,
    action: InspectionLogAction,
    description: str,
    responses: list[MappedResponse],
    images: list[MappedImage],
) -> None:
    db.add(
        InspectionLog(
            inspection_id=inspection.id,
            user_id=session.user_id,
            user_email=session.email,
            user_name=session.display_name,
            action=action.value,
            description=description,
            new_value={
                "status": inspection.status,
                "responses_count": len(responses),
                "images_count": len(images),
            },
        )
    )


def _apply_transaction_bounds(db: Session) -> None:
    """Cap lock wait and statement time for this transaction (PostgreSQL only)."""
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL lock_timeout = '{int(settings.INSPECTION_TX_MAX_WAIT_MS)}ms'"))
    db.execute(
        text(f"SET LOCAL statement_timeout = '{int(settings.INSPECTION_TX_TIMEOUT_MS)}ms'")
    )


def _run_transaction(db: Session, write, session: UserSession, operation: str) -> None:
    try:
        _apply_transaction_bounds(db)
        write()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(
            f"Inspection {operation} transaction failed",
            extra=build_log_context(user_id=str(session.user_id)),
        )
        raise InspectionTransactionError(f"Failed to {operation} inspection") from e
