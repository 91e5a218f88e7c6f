"""
DateMeDoc Backend — Application Model
=======================================

What:  ORM model for the `applications` table: one respondent's answers
       and submitted links for a date-me-doc.

Status lifecycle (owner-driven):
    pending → reviewed → shortlisted → matched
                      ↘ rejected

Analysis fields (`match_score`, `compatibility_data`, `analysis_completed`)
are filled in by the analysis worker or by POST /api/users/match-application.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, Float, ForeignKey, Index, String, Uuid
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from datemedoc.database import Base, JSONType, utcnow

APPLICATION_STATUSES = ("pending", "reviewed", "shortlisted", "rejected", "matched")


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    date_me_doc_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("date_me_docs.id", ondelete="CASCADE"),
        nullable=False,
    )
    applicant_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="SET NULL"),
        nullable=True,
        comment="Set when the applicant was signed in at submission time",
    )
    applicant_name: Mapped[str] = mapped_column(String(100), nullable=False)
    applicant_email: Mapped[str] = mapped_column(String(320), nullable=False)

    # {question_id: answer}
    answers: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    # [{"type": "twitter", "url": "...", "handle": "..."}]
    social_links: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    match_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    compatibility_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    analysis_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_applications_doc_id", "date_me_doc_id"),
        Index("idx_applications_status", "status"),
    )

    def link_urls(self) -> List[str]:
        return [link["url"] for link in (self.social_links or []) if link.get("url")]

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, doc={self.date_me_doc_id}, status='{self.status}')>"
