"""Tests for the inspection lifecycle service."""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.db.enums import InspectionLogAction, InspectionStatus
from app.db.models import Inspection, InspectionImage, InspectionLog, InspectionResponse
from app.schemas.inspection import InspectionAutosave, InspectionPayload
from app.services import inspection_service
from app.services.inspection_service import (
    InspectionNotFoundError,
    InspectionOwnershipError,
    InspectionStateError,
    InspectionTransactionError,
    InspectionValidationError,
)


def _payload(form=None, status="DRAFT", **fields) -> InspectionPayload:
    return InspectionPayload(status=status, **(form or {}), **fields)


def _count(db, model, inspection_id=None) -> int:
    query = select(func.count()).select_from(model)
    if inspection_id is not None:
        query = query.where(model.inspection_id == inspection_id)
    return db.scalar(query)


@pytest.fixture
def notifications(monkeypatch):
    sent = []
    monkeypatch.setattr(
        inspection_service.notification_service,
        "notify_inspection_submitted",
        lambda db, inspection: sent.append(inspection.id) or True,
    )
    return sent


@pytest.fixture
def draft(db, user_session):
    result = inspection_service.create_inspection(
        db,
        user_session,
        _payload({"section1": {"q1_equipe_integrada": "YES"}}, title="Rua A"),
    )
    return result.inspection


# =============================================================================
# Create
# =============================================================================


def test_create_draft_accepts_partial_form(db, user_session, notifications):
    result = inspection_service.create_inspection(
        db,
        user_session,
        _payload(
            {"section1": {"q1_equipe_integrada": "yes", "q11_foto_pdst": ["https://a/1.jpg"]}},
            title="Obra Centro",
            location={"latitude": -23.5, "longitude": -46.6, "address": "Av. Paulista"},
        ),
    )
    inspection = result.inspection

    assert inspection.status == InspectionStatus.DRAFT.value
    assert inspection.submitted_at is None
    assert inspection.title == "Obra Centro"
    assert inspection.location == "Av. Paulista"
    assert inspection.latitude == -23.5
    assert [r.response for r in inspection.responses] == ["YES"]
    assert [i.type for i in inspection.images] == ["PDST_FRONT"]
    assert [log.action for log in inspection.logs] == [InspectionLogAction.CREATED.value]
    assert notifications == []


def test_create_submitted_validates_and_notifies(db, user_session, valid_form, notifications):
    result = inspection_service.create_inspection(
        db, user_session, _payload(valid_form, status="SUBMITTED")
    )
    inspection = result.inspection

    assert inspection.status == InspectionStatus.SUBMITTED.value
    assert inspection.submitted_at is not None
    assert len(inspection.responses) == 30
    assert len(inspection.images) == 2
    log = inspection.logs[0]
    assert log.action == InspectionLogAction.SUBMITTED.value
    assert log.user_email == user_session.email
    assert log.new_value == {"status": "SUBMITTED", "responses_count": 30, "images_count": 2}
    assert notifications == [inspection.id]


def test_create_submitted_invalid_form_writes_nothing(db, user_session, notifications):
    with pytest.raises(InspectionValidationError) as exc_info:
        inspection_service.create_inspection(
            db, user_session, _payload({"section1": {"q1_equipe_integrada": "YES"}}, status="SUBMITTED")
        )

    assert exc_info.value.errors
    assert _count(db, Inspection) == 0
    assert notifications == []


def test_create_reports_mapping_gaps(db, user_session):
    result = inspection_service.create_inspection(
        db, user_session, _payload({"section1": {"q99_desconhecida": "YES"}})
    )
    assert [gap.location for gap in result.mapping_gaps] == ["section1.q99_desconhecida"]
    assert result.inspection.responses == []


def test_create_rolls_back_on_database_error(db, user_session, monkeypatch):
    def fail(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(inspection_service, "_insert_rows", fail)

    with pytest.raises(InspectionTransactionError):
        inspection_service.create_inspection(
            db, user_session, _payload({"section1": {"q1_equipe_integrada": "YES"}})
        )

    assert _count(db, Inspection) == 0
    assert _count(db, InspectionLog) == 0


# =============================================================================
# Reads
# =============================================================================


def test_get_inspection_not_found(db):
    with pytest.raises(InspectionNotFoundError):
        inspection_service.get_inspection(db, uuid.uuid4())


def test_get_for_session_enforces_ownership(db, draft, other_session, admin_session):
    with pytest.raises(InspectionOwnershipError):
        inspection_service.get_inspection_for_session(db, other_session, draft.id)

    assert inspection_service.get_inspection_for_session(db, admin_session, draft.id).id == draft.id


def test_list_inspections_only_returns_own(db, draft, user_session, other_session):
    inspection_service.create_inspection(db, other_session, _payload(title="Outro"))

    items, total = inspection_service.list_inspections(db, user_session)
    assert total == 1
    assert [item.id for item in items] == [draft.id]

    items, total = inspection_service.list_all_inspections(db)
    assert total == 2


def test_list_inspections_filters_and_paginates(db, user_session, valid_form):
    for index in range(3):
        inspection_service.create_inspection(db, user_session, _payload(title=f"Rascunho {index}"))
    inspection_service.create_inspection(db, user_session, _payload(valid_form, status="SUBMITTED"))

    items, total = inspection_service.list_inspections(
        db, user_session, status=InspectionStatus.DRAFT, page=2, per_page=2
    )
    assert total == 3
    assert len(items) == 1

    items, total = inspection_service.list_inspections(
        db, user_session, status=InspectionStatus.SUBMITTED
    )
    assert total == 1


def test_list_all_inspections_filters_by_user(db, draft, user_session, other_session):
    inspection_service.create_inspection(db, other_session, _payload())
    items, total = inspection_service.list_all_inspections(db, user_id=other_session.user_id)
    assert total == 1
    assert items[0].user_id == other_session.user_id


def test_hydrate_form_round_trips(db, user_session, valid_form):
    valid_form["section7"] = {
        "q25_escavacao_profunda": "YES",
        "q25_profundidade": 2.0,
        "q25_1_escoramento": "YES",
        "q25_2_escadas_acesso": "NO",
        "q26_materiais_distantes": "YES",
    }
    created = inspection_service.create_inspection(
        db,
        user_session,
        _payload(valid_form, title="Escavação", location={"address": "Rua B"}),
    )

    hydrated = inspection_service.hydrate_form(db, user_session, created.inspection.id)

    assert hydrated.mapping_gaps == []
    assert hydrated.form_data == valid_form
    assert hydrated.location.address == "Rua B"
    assert hydrated.location.latitude is None


def test_draft_depth_with_decimal_comma_survives_reload(db, user_session):
    created = inspection_service.create_inspection(
        db,
        user_session,
        _payload({"section7": {"q25_escavacao_profunda": "YES", "q25_profundidade": "2,5"}}),
    )
    assert created.mapping_gaps == []

    hydrated = inspection_service.hydrate_form(db, user_session, created.inspection.id)

    assert hydrated.mapping_gaps == []
    assert hydrated.form_data == {
        "section7": {"q25_escavacao_profunda": "YES", "q25_profundidade": 2.5}
    }


def test_hydrate_form_without_location(db, draft, user_session):
    hydrated = inspection_service.hydrate_form(db, user_session, draft.id)
    assert hydrated.location is None
    assert hydrated.form_data == {"section1": {"q1_equipe_integrada": "YES"}}


# =============================================================================
# Replace
# =============================================================================


def test_replace_draft_replaces_all_rows(db, draft, user_session):
    result = inspection_service.replace_inspection(
        db,
        user_session,
        draft.id,
        _payload(
            {
                "section2": {"q11_pt_emitida": "NO"},
                "section9": {"fotos_gerais": ["https://a/1.jpg", "https://a/2.jpg"]},
            },
            title="Rua A - revisada",
        ),
    )
    inspection = result.inspection

    assert inspection.title == "Rua A - revisada"
    assert [(r.section_number, r.question_number, r.response) for r in inspection.responses] == [
        (2, 11, "NO")
    ]
    assert [i.url for i in inspection.images] == ["https://a/1.jpg", "https://a/2.jpg"]
    assert _count(db, InspectionResponse, draft.id) == 1
    assert _count(db, InspectionImage, draft.id) == 2
    assert {log.action for log in inspection.logs} == {
        InspectionLogAction.CREATED.value,
        InspectionLogAction.UPDATED.value,
    }


def test_replace_draft_to_submitted(db, draft, user_session, valid_form, notifications):
    result = inspection_service.replace_inspection(
        db, user_session, draft.id, _payload(valid_form, status="SUBMITTED")
    )

    assert result.inspection.status == InspectionStatus.SUBMITTED.value
    assert result.inspection.submitted_at is not None
    assert InspectionLogAction.SUBMITTED.value in {log.action for log in result.inspection.logs}
    assert notifications == [draft.id]


def test_replace_submit_with_invalid_form_keeps_previous_rows(db, draft, user_session):
    with pytest.raises(InspectionValidationError):
        inspection_service.replace_inspection(
            db, user_session, draft.id, _payload({"section2": {"q11_pt_emitida": "NO"}}, status="SUBMITTED")
        )

    db.refresh(draft)
    assert draft.status == InspectionStatus.DRAFT.value
    assert [(r.section_number, r.question_number) for r in draft.responses] == [(1, 1)]


def test_replace_rolls_back_on_database_error(db, draft, user_session, monkeypatch):
    def fail(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("lock timeout"))

    monkeypatch.setattr(inspection_service, "_insert_rows", fail)

    with pytest.raises(InspectionTransactionError):
        inspection_service.replace_inspection(
            db, user_session, draft.id, _payload({"section2": {"q11_pt_emitida": "NO"}}, title="X")
        )

    db.expire_all()
    inspection = db.get(Inspection, draft.id)
    assert inspection.title == "Rua A"
    assert _count(db, InspectionResponse, draft.id) == 1


def test_replace_draft_by_other_user_is_forbidden(db, draft, other_session):
    with pytest.raises(InspectionOwnershipError):
        inspection_service.replace_inspection(db, other_session, draft.id, _payload())


def test_owner_cannot_edit_submitted(db, user_session, valid_form):
    created = inspection_service.create_inspection(
        db, user_session, _payload(valid_form, status="SUBMITTED")
    )
    with pytest.raises(InspectionStateError):
        inspection_service.replace_inspection(
            db, user_session, created.inspection.id, _payload(valid_form, status="SUBMITTED")
        )


def test_admin_edits_submitted_and_status_stays_submitted(
    db, user_session, admin_session, valid_form, notifications
):
    created = inspection_service.create_inspection(
        db, user_session, _payload(valid_form, status="SUBMITTED")
    )
    submitted_at = created.inspection.submitted_at
    valid_form["section1"]["q8_pdst_assinado"] = "YES"

    # A DRAFT status in the payload cannot reopen a submitted inspection
    result = inspection_service.replace_inspection(
        db, admin_session, created.inspection.id, _payload(valid_form, status="DRAFT")
    )
    inspection = result.inspection

    assert inspection.status == InspectionStatus.SUBMITTED.value
    assert inspection.submitted_at == submitted_at
    assert inspection.user_id == user_session.user_id
    log = next(log for log in inspection.logs if log.action == InspectionLogAction.EDITED_AFTER_SUBMIT.value)
    assert log.user_id == admin_session.user_id
    # Only the original submission notified
    assert notifications == [inspection.id]


def test_admin_edit_of_submitted_is_validated(db, user_session, admin_session, valid_form):
    created = inspection_service.create_inspection(
        db, user_session, _payload(valid_form, status="SUBMITTED")
    )
    del valid_form["section9"]

    with pytest.raises(InspectionValidationError):
        inspection_service.replace_inspection(
            db, admin_session, created.inspection.id, _payload(valid_form, status="SUBMITTED")
        )


def test_archived_cannot_be_edited(db, draft, user_session, admin_session):
    draft.status = InspectionStatus.ARCHIVED.value
    db.commit()

    for session in (user_session, admin_session):
        with pytest.raises(InspectionStateError):
            inspection_service.replace_inspection(db, session, draft.id, _payload())


# =============================================================================
# Autosave
# =============================================================================


def test_autosave_updates_only_sent_fields(db, draft, user_session):
    inspection = inspection_service.autosave_inspection(
        db,
        user_session,
        draft.id,
        InspectionAutosave(location={"latitude": 1.5, "longitude": 2.5}),
    )

    assert inspection.title == "Rua A"
    assert inspection.latitude == 1.5
    assert inspection.location is None
    assert len(inspection.responses) == 1


def test_autosave_can_clear_title(db, draft, user_session):
    inspection = inspection_service.autosave_inspection(
        db, user_session, draft.id, InspectionAutosave(title=None)
    )
    assert inspection.title is None


def test_autosave_cannot_submit(db, draft, user_session):
    with pytest.raises(InspectionStateError):
        inspection_service.autosave_inspection(
            db, user_session, draft.id, InspectionAutosave(status="SUBMITTED")
        )


def test_autosave_rejects_non_owner_and_non_draft(db, draft, user_session, admin_session):
    with pytest.raises(InspectionOwnershipError):
        inspection_service.autosave_inspection(db, admin_session, draft.id, InspectionAutosave(title="x"))

    draft.status = InspectionStatus.SUBMITTED.value
    db.commit()
    with pytest.raises(InspectionStateError):
        inspection_service.autosave_inspection(db, user_session, draft.id, InspectionAutosave(title="x"))


# =============================================================================
# Delete
# =============================================================================


def test_delete_draft_cascades(db, draft, user_session):
    inspection_service.delete_inspection(db, user_session, draft.id)

    assert db.get(Inspection, draft.id) is None
    assert _count(db, InspectionResponse) == 0
    assert _count(db, InspectionLog) == 0


def test_delete_rules(db, draft, user_session, other_session, valid_form):
    with pytest.raises(InspectionOwnershipError):
        inspection_service.delete_inspection(db, other_session, draft.id)

    submitted = inspection_service.create_inspection(
        db, user_session, _payload(valid_form, status="SUBMITTED")
    ).inspection
    with pytest.raises(InspectionStateError):
        inspection_service.delete_inspection(db, user_session, submitted.id)
