"""API tests for /admin: user approval, all-inspections view and reports."""

import pytest
from httpx import AsyncClient

from app.db.enums import Role
from app.db.models import User


@pytest.mark.asyncio
async def test_admin_routes_require_admin(authed_client: AsyncClient):
    for path in ("/admin/users", "/admin/inspections", "/admin/reports/summary"):
        response = await authed_client.get(path)
        assert response.status_code == 403, path


@pytest.mark.asyncio
async def test_list_users_pending_first(admin_client: AsyncClient, test_user, pending_user):
    response = await admin_client.get("/admin/users")
    assert response.status_code == 200
    users = response.json()
    assert users[0]["id"] == str(pending_user.id)
    assert {u["id"] for u in users} >= {str(test_user.id), str(pending_user.id)}

    response = await admin_client.get("/admin/users", params={"role": "PENDING"})
    assert [u["id"] for u in response.json()] == [str(pending_user.id)]


def test_user_table_tracks_approval_not_logins():
    columns = set(User.__table__.columns.keys())
    assert {"approved_at", "rejected_at", "token_version"} <= columns
    assert "last_login_at" not in columns


@pytest.mark.asyncio
async def test_approve_user(admin_client: AsyncClient, db, pending_user):
    old_version = pending_user.token_version
    response = await admin_client.post(f"/admin/users/{pending_user.id}/approve")

    assert response.status_code == 200
    data = response.json()
    assert data["role"] == Role.USER.value
    assert data["approved_at"] is not None

    db.refresh(pending_user)
    assert pending_user.token_version == old_version + 1


@pytest.mark.asyncio
async def test_reject_user(admin_client: AsyncClient, pending_user):
    response = await admin_client.post(
        f"/admin/users/{pending_user.id}/reject",
        json={"reason": "  Não faz parte da equipe  "},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_active"] is False
    assert data["rejection_reason"] == "Não faz parte da equipe"


@pytest.mark.asyncio
async def test_admin_cannot_reject_self(admin_client: AsyncClient, admin_user):
    response = await admin_client.post(f"/admin/users/{admin_user.id}/reject")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_toggle_role(admin_client: AsyncClient, test_user, pending_user):
    response = await admin_client.post(f"/admin/users/{test_user.id}/toggle-role")
    assert response.status_code == 200
    assert response.json()["role"] == Role.ADMIN.value

    response = await admin_client.post(f"/admin/users/{test_user.id}/toggle-role")
    assert response.json()["role"] == Role.USER.value

    response = await admin_client.post(f"/admin/users/{pending_user.id}/toggle-role")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_user_returns_404(admin_client: AsyncClient):
    response = await admin_client.post("/admin/users/00000000-0000-0000-0000-000000000000/approve")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_lists_every_inspection(
    admin_client: AsyncClient, authed_client: AsyncClient, test_user
):
    await authed_client.post("/inspections", json={"title": "Inspetor"})
    await admin_client.post("/inspections", json={"title": "Admin"})

    response = await admin_client.get("/admin/inspections")
    assert response.json()["total"] == 2

    response = await admin_client.get("/admin/inspections", params={"user_id": str(test_user.id)})
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["title"] == "Inspetor"


@pytest.mark.asyncio
async def test_admin_reads_any_inspection(admin_client: AsyncClient, authed_client: AsyncClient):
    created = await authed_client.post("/inspections", json={"title": "Inspetor"})
    inspection_id = created.json()["inspection"]["id"]

    response = await admin_client.get(f"/inspections/{inspection_id}")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_report_summary(
    admin_client: AsyncClient, authed_client: AsyncClient, test_user, valid_form
):
    await authed_client.post("/inspections", json={"status": "SUBMITTED", **valid_form})
    await authed_client.post("/inspections", json={"title": "Rascunho"})

    response = await admin_client.get("/admin/reports/summary", params={"days": 7})
    assert response.status_code == 200
    data = response.json()

    assert data["total_inspections"] == 2
    assert data["total_images"] == 2
    assert data["by_status"] == {"DRAFT": 1, "SUBMITTED": 1, "ARCHIVED": 0}
    assert data["period_days"] == 7
    assert data["created_in_period"] == 2
    assert data["submitted_in_period"] == 1
    assert data["submission_rate"] == 0.5
    assert data["top_inspectors"][0]["user_id"] == str(test_user.id)
    assert data["top_inspectors"][0]["inspections"] == 2
    top_questions = {item["question_text"] for item in data["top_non_conformities"]}
    assert "O formulário do PDST está datado e assinado pela equipe?" in top_questions
