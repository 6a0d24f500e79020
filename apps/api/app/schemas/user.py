"""User-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class UserRead(BaseModel):
    """Response schema for reading a user (admin views)."""

    id: UUID
    email: str
    name: str
    role: str
    is_active: bool
    approved_at: datetime | None
    rejected_at: datetime | None
    rejection_reason: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserRejectRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)
