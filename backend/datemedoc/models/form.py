"""
DateMeDoc Backend — Dating Form Models
========================================

What:  ORM models for `dating_forms` (a lighter owner-authored questionnaire)
       and `form_applications` (submissions to those forms).

`applicant_data` keeps the submitted field values keyed by field label
("Name", "Email", "Location", ...). When the applicant was signed in,
`applicant_user_id` links to their profile and AI selection scores against
that profile instead of the raw form values.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from datemedoc.database import Base, JSONType, utcnow

FORM_STATUSES = ("draft", "published", "closed")
FORM_APPLICATION_STATUSES = ("new", "shortlisted", "archived")


class DatingForm(Base):
    __tablename__ = "dating_forms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fields: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_dating_forms_owner_id", "owner_id"),
    )


class FormApplication(Base):
    __tablename__ = "form_applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dating_forms.id", ondelete="CASCADE"), nullable=False
    )
    form_owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    applicant_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True
    )
    applicant_data: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
    ai_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    match_factors: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_form_applications_owner", "form_owner_id", "status"),
    )

    def field(self, name: str, default: Any = None) -> Any:
        """Looks up a submitted value by label, ignoring case."""
        data = self.applicant_data or {}
        if name in data:
            return data[name]
        lowered = name.lower()
        for key, value in data.items():
            if key.lower() == lowered:
                return value
        return default
