"""
DateMeDoc Backend — Date-Me-Doc Model
=======================================

What:  ORM model for the `date_me_docs` table: a user-authored public
       profile page with a questionnaire applicants fill in.
How:   Public access goes through the unique `slug`; owner access goes
       through `id` plus a `user_id` ownership check in the service layer.

Counters:
    view_count         incremented on every public GET by slug
    application_count  incremented on every accepted application
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from datemedoc.database import Base, JSONType, StringList, utcnow


class DateMeDoc(Base):
    """
    A date-me-doc.

    `form_questions` holds the questionnaire as a list of
    {id, question, type, required, options, order} objects. A question's
    `id` is the key applicants use in their `answers` object.
    """

    __tablename__ = "date_me_docs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    about_me: Mapped[str] = mapped_column(Text, nullable=False, default="")
    header_content: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    interests: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    deal_breakers: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    form_questions: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    social_links: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    preferences: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    settings: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    application_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_date_me_docs_user_id", "user_id"),
        Index("idx_date_me_docs_slug", "slug"),
    )

    def required_questions(self) -> List[Dict[str, Any]]:
        return [q for q in (self.form_questions or []) if q.get("required")]

    def __repr__(self) -> str:
        return f"<DateMeDoc(id={self.id}, slug='{self.slug}', active={self.is_active})>"
