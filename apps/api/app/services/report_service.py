"""Aggregated inspection statistics for the admin reports page."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.db.enums import InspectionStatus, ResponseValue
from app.db.models import Inspection, InspectionImage, InspectionResponse, User


def get_summary(
    db: Session,
    days: int = 30,
    top_limit: int = 10,
) -> dict:
    """
    Totals, per-status counts, recent activity, most active inspectors and
    the questions most often answered NO.
    """
    since = datetime.now(timezone.utc) - timedelta(days=days)

    by_status = {status.value: 0 for status in InspectionStatus}
    for status, count in db.execute(
        select(Inspection.status, func.count()).group_by(Inspection.status)
    ).all():
        by_status[status] = count

    recent = db.scalar(
        select(func.count()).select_from(Inspection).where(Inspection.created_at >= since)
    ) or 0
    submitted_recent = db.scalar(
        select(func.count())
        .select_from(Inspection)
        .where(
            Inspection.status == InspectionStatus.SUBMITTED.value,
            Inspection.submitted_at >= since,
        )
    ) or 0

    inspection_count = func.count(Inspection.id).label("inspections")
    top_inspectors = db.execute(
        select(User.id, User.name, User.email, inspection_count)
        .join(Inspection, Inspection.user_id == User.id)
        .group_by(User.id, User.name, User.email)
        .order_by(inspection_count.desc(), User.name)
        .limit(top_limit)
    ).all()

    no_count = func.count(InspectionResponse.id).label("occurrences")
    top_non_conformities = db.execute(
        select(
            InspectionResponse.section_number,
            InspectionResponse.question_number,
            InspectionResponse.question_text,
            no_count,
        )
        .where(InspectionResponse.response == ResponseValue.NO.value)
        .group_by(
            InspectionResponse.section_number,
            InspectionResponse.question_number,
            InspectionResponse.question_text,
        )
        .order_by(
            no_count.desc(),
            InspectionResponse.section_number,
            InspectionResponse.question_number,
        )
        .limit(top_limit)
    ).all()

    total = sum(by_status.values())
    return {
        "total_users": db.scalar(select(func.count()).select_from(User)) or 0,
        "total_inspections": total,
        "total_images": db.scalar(select(func.count()).select_from(InspectionImage)) or 0,
        "by_status": by_status,
        "period_days": days,
        "created_in_period": recent,
        "submitted_in_period": submitted_recent,
        "submission_rate": round(by_status[InspectionStatus.SUBMITTED.value] / total, 3) if total else 0.0,
        "top_inspectors": [
            {"user_id": row.id, "name": row.name, "email": row.email, "inspections": row.inspections}
            for row in top_inspectors
        ],
        "top_non_conformities": [
            {
                "section_number": row.section_number,
                "question_number": row.question_number,
                "question_text": row.question_text,
                "occurrences": row.occurrences,
            }
            for row in top_non_conformities
        ],
    }
