"""
DateMeDoc Backend — User Profile Model
========================================

What:  ORM model for the `user_profiles` table.
How:   One row per identity-provider user, keyed by `auth_user_id` (the JWT
       `sub` claim). Rows are created lazily the first time a token holder
       touches a profile-dependent endpoint, then filled in by onboarding.
Who:   ProfileService, DateMeDocService (owner lookup), ApplicationService
       (applicant linkage), matching and the analysis worker.

Query Patterns:
    - Resolve caller:  WHERE auth_user_id = :sub        → idx_user_profiles_auth_user_id
    - Discovery:       WHERE profile_completed AND age BETWEEN :min AND :max
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from datemedoc.database import Base, JSONType, StringList, utcnow


class UserProfile(Base):
    """
    A person known to the identity provider.

    Lifecycle:
        1. Created with auth_user_id/email/name from token claims
        2. Completed through onboarding (profile_completed = True)
        3. Enriched by footprint analysis (digital_footprint_score, last_analysis_at)
    """

    __tablename__ = "user_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    auth_user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Subject claim of the identity provider token",
    )
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Demographics ──────────────────────────────────────────────────────
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    relationship_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    personality_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    education: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    occupation: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ── Matching inputs ───────────────────────────────────────────────────
    interests: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    hobbies: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    values: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    looking_for: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    deal_breakers: Mapped[List[str]] = mapped_column(StringList, nullable=False, default=list)
    lifestyle: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    preferences: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    # {"min": int, "max": int}
    preferred_age_range: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    # ── Social presence ───────────────────────────────────────────────────
    twitter_handle: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    instagram_handle: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    personal_website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    spotify_profile: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # [{"type": "blog", "url": "..."}]
    other_links: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    # {"twitter": "...", "website": "..."} as submitted during onboarding
    social_media_urls: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # ── Status ────────────────────────────────────────────────────────────
    profile_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    digital_footprint_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_analysis_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_user_profiles_auth_user_id", "auth_user_id"),
    )

    def __repr__(self) -> str:
        return f"<UserProfile(id={self.id}, auth_user_id='{self.auth_user_id}')>"
