"""Admin report schemas."""

from uuid import UUID

from pydantic import BaseModel


class InspectorStat(BaseModel):
    user_id: UUID
    name: str
    email: str
    inspections: int


class NonConformityStat(BaseModel):
    section_number: int
    question_number: int
    question_text: str
    occurrences: int


class ReportSummary(BaseModel):
    total_users: int
    total_inspections: int
    total_images: int
    by_status: dict[str, int]
    period_days: int
    created_in_period: int
    submitted_in_period: int
    submission_rate: float
    top_inspectors: list[InspectorStat]
    top_non_conformities: list[NonConformityStat]
