"""Submission notification via outbound webhook (Power Automate style flow)."""

from __future__ import annotations

import html
import logging
from datetime import datetime, timezone

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.db.enums import ResponseValue
from app.db.models import Inspection, InspectionResponse, User

logger = logging.getLogger(__name__)


def _format_dt(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y %H:%M")


def list_non_conformities(db: Session, inspection_id) -> list[str]:
    """Question labels answered NO, in checklist order."""
    rows = db.execute(
        select(InspectionResponse.section_number, InspectionResponse.question_number, InspectionResponse.question_text)
        .where(
            InspectionResponse.inspection_id == inspection_id,
            InspectionResponse.response == ResponseValue.NO.value,
        )
        .order_by(InspectionResponse.section_number, InspectionResponse.question_number)
    ).all()
    return [row.question_text for row in rows]


def build_inspection_email(inspection: Inspection, owner: User | None, non_conformities: list[str]) -> dict:
    """Build the webhook body: recipients, subject, plain text and HTML."""
    owner_name = owner.name if owner else "Desconhecido"
    owner_email = owner.email if owner else ""
    link = f"{settings.FRONTEND_URL.rstrip('/')}/inspection/{inspection.id}"

    lines = [
        "Olá,",
        "",
        "Uma nova inspeção de segurança foi registrada no sistema.",
        "",
        "=== DADOS DA INSPEÇÃO ===",
        f"Inspeção: {inspection.title or inspection.id}",
        f"Responsável: {owner_name} ({owner_email})",
        f"Status: {inspection.status}",
        f"Data de Criação: {_format_dt(inspection.created_at)}",
    ]
    if inspection.submitted_at:
        lines.append(f"Data de Envio: {_format_dt(inspection.submitted_at)}")
    if inspection.location:
        lines.append(f"Local: {inspection.location}")
    lines.append(f"Não conformidades: {len(non_conformities)}")
    lines.extend(f"  - {item}" for item in non_conformities)
    lines.extend(["", link])

    nc_html = "".join(f"<li>{html.escape(item)}</li>" for item in non_conformities)
    body_html = (
        "<p>Uma nova inspeção de segurança foi registrada no sistema.</p>"
        f"<p><strong>Responsável:</strong> {html.escape(owner_name)} ({html.escape(owner_email)})<br>"
        f"<strong>Local:</strong> {html.escape(inspection.location or '-')}<br>"
        f"<strong>Enviada em:</strong> {_format_dt(inspection.submitted_at)}</p>"
        f"<p><strong>Não conformidades ({len(non_conformities)})</strong></p>"
        f"<ul>{nc_html}</ul>"
        f'<p><a href="{html.escape(link)}">Abrir inspeção</a></p>'
    )

    return {
        "to": settings.NOTIFICATION_EMAIL_TO or owner_email,
        "cc": settings.NOTIFICATION_EMAIL_CC or None,
        "subject": f"{settings.NOTIFICATION_EMAIL_SUBJECT} - {inspection.title or inspection.id}",
        "body": "\r\n".join(lines),
        "bodyHtml": body_html,
        "metadata": {
            "inspection_id": str(inspection.id),
            "non_conformities": len(non_conformities),
            "sent_at": datetime.now(timezone.utc).isoformat(),
        },
    }


def notify_inspection_submitted(db: Session, inspection: Inspection) -> bool:
    """
    Post the submission summary to the configured webhook.

    Returns True when the webhook accepted it. Failures are logged and
    swallowed so they never undo a committed submission.
    """
    if not settings.NOTIFICATION_WEBHOOK_URL:
        return False

    owner = db.get(User, inspection.user_id)
    payload = build_inspection_email(inspection, owner, list_non_conformities(db, inspection.id))
    log_extra = build_log_context(
        user_id=str(inspection.user_id), inspection_id=str(inspection.id)
    )

    try:
        response = httpx.post(
            settings.NOTIFICATION_WEBHOOK_URL,
            json=payload,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Submission notification failed: {e}", extra=log_extra)
        return False

    logger.info("Submission notification sent", extra=log_extra)
    return True
