"""
DateMeDoc Backend — Profile Schemas
=====================================

What:  Request/response contracts for /api/users and /api/auth/me.

Validation rules on updates:
    name 2-100 chars · bio ≤ 1000 · social handles ≤ 50
    personal_website / spotify_profile must be http(s) URLs
Onboarding:
    full_name, age (18-100), gender, location, bio (≥ 50 chars),
    interests, looking_for and relationship_type are required
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, field_validator, model_validator


LinkType = Literal["twitter", "instagram", "website", "blog", "linkedin", "spotify", "other"]


class AgeRange(BaseModel):
    min: int = Field(ge=18, le=100)
    max: int = Field(ge=18, le=100)

    @model_validator(mode="after")
    def check_order(self) -> "AgeRange":
        if self.min > self.max:
            raise ValueError("preferred_age_range.min must not exceed max")
        return self


class ProfileLink(BaseModel):
    type: LinkType = "other"
    url: HttpUrl
    handle: Optional[str] = Field(default=None, max_length=100)

    def as_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "url": str(self.url), "handle": self.handle}


def _url_or_none(value: Optional[HttpUrl]) -> Optional[str]:
    return str(value) if value is not None else None


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class ProfileCreate(BaseModel):
    """Body of POST /api/users/profile (first-time profile creation)."""
    name: str = Field(min_length=2, max_length=100)
    email: Optional[str] = Field(default=None, max_length=320)
    age: Optional[int] = Field(default=None, ge=18, le=100)
    location: Optional[str] = Field(default=None, max_length=255)
    gender: Optional[str] = Field(default=None, max_length=50)
    looking_for: List[str] = Field(default_factory=list)
    bio: Optional[str] = Field(default=None, max_length=1000)
    interests: List[str] = Field(default_factory=list)
    hobbies: List[str] = Field(default_factory=list)
    values: List[str] = Field(default_factory=list)
    lifestyle: Dict[str, Any] = Field(default_factory=dict)
    preferences: Dict[str, Any] = Field(default_factory=dict)


class ProfileUpdate(BaseModel):
    """Body of PUT /api/users/profile. Only the fields sent are changed."""
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=1000)
    avatar_url: Optional[HttpUrl] = None
    twitter_handle: Optional[str] = Field(default=None, max_length=50)
    instagram_handle: Optional[str] = Field(default=None, max_length=50)
    personal_website: Optional[HttpUrl] = None
    spotify_profile: Optional[HttpUrl] = None
    other_links: Optional[List[ProfileLink]] = None
    age: Optional[int] = Field(default=None, ge=18, le=100)
    gender: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=255)
    interests: Optional[List[str]] = None
    hobbies: Optional[List[str]] = None
    values: Optional[List[str]] = None
    looking_for: Optional[List[str]] = None
    deal_breakers: Optional[List[str]] = None
    lifestyle: Optional[Dict[str, Any]] = None
    preferences: Optional[Dict[str, Any]] = None
    preferred_age_range: Optional[AgeRange] = None

    model_config = {"extra": "forbid"}

    @field_validator(
        "interests", "hobbies", "values", "looking_for", "deal_breakers",
        "lifestyle", "preferences",
    )
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        # Scalar fields accept null (clears them); these columns are NOT NULL.
        if value is None:
            raise ValueError("may not be null")
        return value

    def changes(self) -> Dict[str, Any]:
        """Sent fields as column values (URLs as strings, links as dicts)."""
        data = self.model_dump(exclude_unset=True)
        for key in ("avatar_url", "personal_website", "spotify_profile"):
            if key in data:
                data[key] = _url_or_none(getattr(self, key))
        if "other_links" in data:
            data["other_links"] = [link.as_dict() for link in self.other_links or []]
        return data


class OnboardingRequest(BaseModel):
    """Body of POST /api/users/onboarding."""
    full_name: str = Field(min_length=2, max_length=100)
    age: int = Field(ge=18, le=100)
    gender: str = Field(min_length=1, max_length=50)
    location: str = Field(min_length=1, max_length=255)
    bio: str = Field(min_length=50, max_length=1000)
    interests: List[str] = Field(min_length=1)
    looking_for: List[str] = Field(min_length=1)
    relationship_type: str = Field(min_length=1, max_length=100)
    personality_type: Optional[str] = Field(default=None, max_length=100)
    hobbies: List[str] = Field(default_factory=list)
    lifestyle: Dict[str, Any] = Field(default_factory=dict)
    education: Optional[str] = Field(default=None, max_length=255)
    occupation: Optional[str] = Field(default=None, max_length=255)
    social_media_urls: Dict[str, Optional[str]] = Field(default_factory=dict)
    preferred_age_range: Optional[AgeRange] = None
    deal_breakers: List[str] = Field(default_factory=list)
    values: List[str] = Field(default_factory=list)

    def submitted_urls(self) -> List[str]:
        return [url for url in self.social_media_urls.values() if url]


class ExtractContentRequest(BaseModel):
    url: HttpUrl
    type: Optional[LinkType] = None


class AnalyzeProfileRequest(BaseModel):
    """Ad-hoc profile body: bio, interests and optional content.texts."""
    profile: Dict[str, Any]

    def corpus(self) -> Dict[str, Any]:
        content = self.profile.get("content") or {}
        return {
            "bio": self.profile.get("bio", ""),
            "interests": self.profile.get("interests", []),
            "texts": content.get("texts", []) if isinstance(content, dict) else [],
        }


class CalculateCompatibilityRequest(BaseModel):
    profile1: Dict[str, Any]
    profile2: Dict[str, Any]
    preferences: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("profile1", "profile2")
    @classmethod
    def not_empty(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("Two profiles are required")
        return v


class MatchApplicationRequest(BaseModel):
    application_id: uuid.UUID
    include_url_matching: bool = False


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class ProfileResponse(BaseModel):
    id: uuid.UUID
    auth_user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    relationship_type: Optional[str] = None
    personality_type: Optional[str] = None
    education: Optional[str] = None
    occupation: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    hobbies: List[str] = Field(default_factory=list)
    values: List[str] = Field(default_factory=list)
    looking_for: List[str] = Field(default_factory=list)
    deal_breakers: List[str] = Field(default_factory=list)
    lifestyle: Dict[str, Any] = Field(default_factory=dict)
    preferences: Dict[str, Any] = Field(default_factory=dict)
    preferred_age_range: Optional[Dict[str, Any]] = None
    twitter_handle: Optional[str] = None
    instagram_handle: Optional[str] = None
    personal_website: Optional[str] = None
    spotify_profile: Optional[str] = None
    other_links: List[Dict[str, Any]] = Field(default_factory=list)
    social_media_urls: Dict[str, Any] = Field(default_factory=dict)
    profile_completed: bool = False
    digital_footprint_score: Optional[int] = None
    last_analysis_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileEnvelope(BaseModel):
    message: Optional[str] = None
    profile: ProfileResponse


class ContentAnalysisResponse(BaseModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    application_id: Optional[uuid.UUID] = None
    source_type: str
    source_url: Optional[str] = None
    extracted_content: Dict[str, Any] = Field(default_factory=dict)
    content_metadata: Dict[str, Any] = Field(default_factory=dict)
    psychological_profile: Optional[Dict[str, Any]] = None
    interests: List[str] = Field(default_factory=list)
    communication_style: Dict[str, Any] = Field(default_factory=dict)
    values: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AnalysisListResponse(BaseModel):
    analyses: List[ContentAnalysisResponse]


class FootprintResponse(BaseModel):
    message: str = "Analysis completed successfully"
    analysis: Dict[str, Any]
    metadata: Dict[str, Any]
    footprint_score: int


class ExtractContentResponse(BaseModel):
    success: bool = True
    content: Dict[str, Any]


class AnalyzeProfileResponse(BaseModel):
    success: bool = True
    analysis: Dict[str, Any]


class CompatibilityResponse(BaseModel):
    success: bool = True
    compatibility: Dict[str, Any]


class MatchCandidate(BaseModel):
    profile: ProfileResponse
    match_score: int
    match_factors: List[Dict[str, Any]] = Field(default_factory=list)


class MatchesResponse(BaseModel):
    success: bool = True
    matches: List[MatchCandidate]


class MatchApplicationResponse(BaseModel):
    success: bool = True
    match_result: Dict[str, Any]
    match_score_id: Optional[uuid.UUID] = None
