"""Enum definitions for application constants."""

from app.db.enums.auth import Role
from app.db.enums.inspections import (
    ImageType,
    InspectionLogAction,
    InspectionStatus,
    QuestionKind,
    ResponseValue,
)
from app.db.enums.permissions import (
    ROLES_APPROVED,
    ROLES_CAN_EDIT_SUBMITTED,
    ROLES_CAN_MANAGE_USERS,
    ROLES_CAN_VIEW_ALL_INSPECTIONS,
)

__all__ = [
    "ImageType",
    "InspectionLogAction",
    "InspectionStatus",
    "QuestionKind",
    "ResponseValue",
    "Role",
    "ROLES_APPROVED",
    "ROLES_CAN_EDIT_SUBMITTED",
    "ROLES_CAN_MANAGE_USERS",
    "ROLES_CAN_VIEW_ALL_INSPECTIONS",
]
