"""
DateMeDoc Backend — Analysis Models
=====================================

What:  ORM models for the three tables the AI pipeline writes to:

    content_analysis    one row per successfully extracted link, later
                        enriched with the Gemini psychological profile
    matchmaking_scores  one stored compatibility result per scoring run
    analysis_jobs       queued background work consumed by datemedoc.worker

Who:   ProfileService (footprint analysis), MatchingService callers,
       ApplicationService (job enqueue) and AnalysisWorker.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from datemedoc.database import Base, JSONType, StringList, utcnow

JOB_STATUSES = ("queued", "processing", "completed", "failed")


class ContentAnalysis(Base):
    """Extracted content from one source plus the profile derived from it."""

    __tablename__ = "content_analysis"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=True
    )
    application_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=True
    )
    source_type: Mapped[str] = mapped_column(String(50), nullable=False)
    source_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    extracted_content: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    content_metadata: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    psychological_profile: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    interests: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    communication_style: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    values: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_content_analysis_user_id", "user_id"),
        Index("idx_content_analysis_application_id", "application_id"),
    )

    def apply_profile(self, profile: Dict[str, Any]) -> None:
        """Copies the Gemini profile and its headline fields onto this row."""
        self.psychological_profile = profile
        self.interests = list(profile.get("interests") or [])
        self.communication_style = dict(profile.get("communication_style") or {})
        self.values = list(profile.get("values") or [])


class MatchmakingScore(Base):
    """A stored compatibility result between a doc owner and an applicant."""

    __tablename__ = "matchmaking_scores"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    doc_owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True
    )
    applicant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True
    )
    text_match_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    url_context_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overall_score: Mapped[int] = mapped_column(Integer, nullable=False)
    compatibility_breakdown: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    recommendation: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    green_flags: Mapped[List[Any]] = mapped_column(JSONType, nullable=False, default=list)
    red_flags: Mapped[List[Any]] = mapped_column(JSONType, nullable=False, default=list)
    date_ideas: Mapped[List[Any]] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_matchmaking_scores_application_id", "application_id"),
    )


class AnalysisJob(Base):
    """
    A unit of background work.

    job_type:     content_extraction (entity_type=application)
                  footprint_analysis (entity_type=profile)
    status:       queued → processing → completed | failed
    priority:     lower numbers are claimed first
    """

    __tablename__ = "analysis_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued")
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_analysis_jobs_status", "status", "priority"),
    )

    def __repr__(self) -> str:
        return f"<AnalysisJob(id={self.id}, type='{self.job_type}', status='{self.status}')>"
