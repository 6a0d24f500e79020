"""Pydantic schemas for API request/response models."""

from app.schemas.auth import TokenPayload, UserSession
from app.schemas.inspection import (
    InspectionAutosave,
    InspectionFormRead,
    InspectionListItem,
    InspectionListResponse,
    InspectionPayload,
    InspectionRead,
    InspectionWriteResponse,
    LocationPayload,
)
from app.schemas.report import ReportSummary
from app.schemas.upload import UploadRead
from app.schemas.user import UserRead, UserRejectRequest

__all__ = [
    # Auth
    "TokenPayload",
    "UserSession",
    # Inspections
    "InspectionAutosave",
    "InspectionFormRead",
    "InspectionListItem",
    "InspectionListResponse",
    "InspectionPayload",
    "InspectionRead",
    "InspectionWriteResponse",
    "LocationPayload",
    # Admin
    "ReportSummary",
    "UserRead",
    "UserRejectRequest",
    # Uploads
    "UploadRead",
]
