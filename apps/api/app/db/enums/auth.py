"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles with increasing privilege levels.

    - PENDING: Registered but not yet approved by an administrator
    - USER: Field inspector (creates and edits own inspections)
    - ADMIN: Approves users, edits submitted inspections, views reports
    """

    PENDING = "PENDING"
    USER = "USER"
    ADMIN = "ADMIN"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
