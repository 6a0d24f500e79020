"""SQLAlchemy ORM models for inspection checklists."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import InspectionStatus, ResponseValue

if TYPE_CHECKING:
    from app.db.models import User


class Inspection(Base):
    """
    A field safety inspection (checklist) owned by one inspector.

    Responses and images are never updated in place: every full save
    deletes and re-inserts them inside one transaction.
    """

    __tablename__ = "inspections"
    __table_args__ = (
        Index("idx_inspections_user_created", "user_id", "created_at"),
        Index("idx_inspections_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=InspectionStatus.DRAFT.value,
        server_default=text(f"'{InspectionStatus.DRAFT.value}'"),
        nullable=False,
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="inspections")
    responses: Mapped[list["InspectionResponse"]] = relationship(
        back_populates="inspection",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="(InspectionResponse.section_number, InspectionResponse.question_number)",
    )
    images: Mapped[list["InspectionImage"]] = relationship(
        back_populates="inspection",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="(InspectionImage.type, InspectionImage.position)",
    )
    logs: Mapped[list["InspectionLog"]] = relationship(
        back_populates="inspection",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InspectionLog.created_at.desc()",
    )


class InspectionResponse(Base):
    """One normalized answer row; unique per (inspection, section, question)."""

    __tablename__ = "inspection_responses"
    __table_args__ = (
        UniqueConstraint(
            "inspection_id",
            "section_number",
            "question_number",
            name="uq_inspection_response_slot",
        ),
        Index("idx_inspection_responses_inspection", "inspection_id"),
        Index("idx_inspection_responses_response", "response"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    inspection_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False
    )
    section_number: Mapped[int] = mapped_column(Integer, nullable=False)
    section_title: Mapped[str] = mapped_column(String(255), nullable=False)
    question_number: Mapped[int] = mapped_column(Integer, nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    response: Mapped[str] = mapped_column(
        String(10),
        default=ResponseValue.NA.value,
        server_default=text(f"'{ResponseValue.NA.value}'"),
        nullable=False,
    )
    text_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    list_values: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    inspection: Mapped["Inspection"] = relationship(back_populates="responses")


class InspectionImage(Base):
    """Photo evidence attached to an inspection, grouped by type."""

    __tablename__ = "inspection_images"
    __table_args__ = (Index("idx_inspection_images_inspection_type", "inspection_id", "type"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    inspection_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    caption: Mapped[str | None] = mapped_column(String(255), nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    section_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    position: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    uploaded_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    uploaded_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    inspection: Mapped["Inspection"] = relationship(back_populates="images")


class InspectionLog(Base):
    """Append-only history entry for an inspection."""

    __tablename__ = "inspection_logs"
    __table_args__ = (Index("idx_inspection_logs_inspection_created", "inspection_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    inspection_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    user_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action: Mapped[str] = mapped_column(String(30), nullable=False)  # InspectionLogAction
    description: Mapped[str] = mapped_column(Text, nullable=False)
    new_value: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    inspection: Mapped["Inspection"] = relationship(back_populates="logs")
