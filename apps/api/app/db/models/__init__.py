"""SQLAlchemy ORM models."""

from app.db.models.auth import User
from app.db.models.inspections import (
    Inspection,
    InspectionImage,
    InspectionLog,
    InspectionResponse,
)

__all__ = [
    "Inspection",
    "InspectionImage",
    "InspectionLog",
    "InspectionResponse",
    "User",
]
