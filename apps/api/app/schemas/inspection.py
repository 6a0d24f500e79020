"""Pydantic schemas for inspections."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.services.question_catalog import SECTION_NUMBERS, section_key


class LocationPayload(BaseModel):
    """GPS fix and reverse-geocoded address captured on the device."""

    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    address: str | None = Field(None, max_length=500)


class InspectionPayload(BaseModel):
    """
    Request schema for creating or fully replacing an inspection.

    Section contents are free-form here; they are resolved through the
    question catalog by the mapper and, on submit, validated in full.
    """

    status: Literal["DRAFT", "SUBMITTED"] = "DRAFT"
    title: str | None = Field(None, max_length=255)
    location: LocationPayload | None = None

    section1: dict[str, Any] | None = None
    section2: dict[str, Any] | None = None
    section3: dict[str, Any] | None = None
    section4: dict[str, Any] | None = None
    section5: dict[str, Any] | None = None
    section6: dict[str, Any] | None = None
    section7: dict[str, Any] | None = None
    section8: dict[str, Any] | None = None
    section9: dict[str, Any] | None = None

    def form_data(self) -> dict[str, dict[str, Any]]:
        """Nested section data, omitting sections that were not sent."""
        sections = {}
        for number in SECTION_NUMBERS:
            name = section_key(number)
            value = getattr(self, name)
            if value is not None:
                sections[name] = value
        return sections


class InspectionAutosave(BaseModel):
    """Request schema for autosave (top-level fields only)."""

    title: str | None = Field(None, max_length=255)
    location: LocationPayload | None = None
    status: Literal["DRAFT", "SUBMITTED"] | None = None


class InspectionResponseRead(BaseModel):
    id: UUID
    section_number: int
    section_title: str
    question_number: int
    question_text: str
    response: str
    text_value: str | None

    model_config = {"from_attributes": True}


class InspectionImageRead(BaseModel):
    id: UUID
    url: str
    caption: str | None
    type: str
    section_number: int | None
    position: int
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class InspectionLogRead(BaseModel):
    id: UUID
    action: str
    description: str
    user_email: str | None
    user_name: str | None
    new_value: dict | None
    created_at: datetime

    model_config = {"from_attributes": True}


class InspectionListItem(BaseModel):
    """Inspection summary for list views."""

    id: UUID
    user_id: UUID
    status: str
    title: str | None
    location: str | None
    submitted_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InspectionRead(InspectionListItem):
    """Inspection detail with rows and history."""

    latitude: float | None
    longitude: float | None
    responses: list[InspectionResponseRead] = []
    images: list[InspectionImageRead] = []
    logs: list[InspectionLogRead] = []


class InspectionListResponse(BaseModel):
    """Paginated inspection list response."""

    items: list[InspectionListItem]
    total: int
    page: int
    per_page: int
    pages: int


class MappingGapRead(BaseModel):
    location: str
    reason: str


class InspectionWriteResponse(BaseModel):
    """Result of create/replace: the stored inspection plus dropped input."""

    inspection: InspectionRead
    mapping_gaps: list[MappingGapRead] = []


class InspectionFormRead(BaseModel):
    """Edit-mode hydration payload."""

    id: UUID
    status: str
    title: str | None
    location: LocationPayload | None
    form_data: dict[str, dict[str, Any]]
    mapping_gaps: list[MappingGapRead] = []
