"""Inspection checklist enums."""

from enum import Enum


class InspectionStatus(str, Enum):
    """Lifecycle of an inspection record."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    ARCHIVED = "ARCHIVED"  # Display-only terminal state


class ResponseValue(str, Enum):
    """Stored answer for a checklist question."""

    YES = "YES"
    NO = "NO"
    NA = "NA"
    PARTIAL = "PARTIAL"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class ImageType(str, Enum):
    """Which photo field an inspection image belongs to."""

    PDST_FRONT = "PDST_FRONT"
    PT_FRONT = "PT_FRONT"
    GENERAL = "GENERAL"


class QuestionKind(str, Enum):
    """Shape of the value a checklist question holds in the form."""

    CHOICE = "choice"
    FREE_TEXT = "free_text"
    PHOTO_ARRAY = "photo_array"


class InspectionLogAction(str, Enum):
    """Append-only inspection history actions."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    SUBMITTED = "SUBMITTED"
    EDITED_AFTER_SUBMIT = "EDITED_AFTER_SUBMIT"
