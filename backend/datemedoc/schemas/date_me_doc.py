"""
DateMeDoc Backend — Date-Me-Doc Schemas
=========================================

What:  Request/response contracts for /api/docs.

Validation rules:
    title 3-200 chars · slug 3-100 chars of [a-z0-9-] · description ≤ 5000
    question types: text, textarea, url, video, email, select
    select questions must list their options
"""

import re
import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from datemedoc.models.application import APPLICATION_STATUSES

SLUG_PATTERN = r"^[a-z0-9-]+$"

QuestionType = Literal["text", "textarea", "url", "video", "email", "select"]
ApplicationStatus = Literal[APPLICATION_STATUSES]

_WHITESPACE = re.compile(r"\s+")


def slugify(title: str) -> str:
    """Lowercases and replaces whitespace runs with '-'."""
    return _WHITESPACE.sub("-", title.strip().lower())


class FormQuestion(BaseModel):
    id: uuid.UUID
    question: str = Field(min_length=1, max_length=1000)
    type: QuestionType
    required: bool = False
    options: Optional[List[str]] = None
    order: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def select_needs_options(self) -> "FormQuestion":
        if self.type == "select" and not self.options:
            raise ValueError("select questions require options")
        return self

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class DateMeDocCreate(BaseModel):
    """
    Body of POST /api/docs.

    `custom_questions` is accepted as an alias of `form_questions`, and
    `description` / `about_me` fill in for each other when one is missing.
    """
    title: str = Field(min_length=3, max_length=200)
    slug: Optional[str] = Field(default=None, min_length=3, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(default=None, max_length=5000)
    about_me: Optional[str] = Field(default=None, max_length=5000)
    header_content: Dict[str, Any] = Field(default_factory=dict)
    interests: List[str] = Field(default_factory=list)
    deal_breakers: List[str] = Field(default_factory=list)
    form_questions: Optional[List[FormQuestion]] = None
    custom_questions: Optional[List[FormQuestion]] = None
    social_links: Dict[str, Any] = Field(default_factory=dict)
    preferences: Dict[str, Any] = Field(default_factory=dict)
    is_public: bool = True
    settings: Dict[str, Any] = Field(default_factory=dict)

    def resolved_slug(self) -> str:
        return self.slug or slugify(self.title)

    def questions(self) -> List[Dict[str, Any]]:
        chosen = self.custom_questions or self.form_questions or []
        return [q.as_dict() for q in chosen]


class DateMeDocUpdate(BaseModel):
    """
    Body of PATCH /api/docs/{id}. Slug and owner are immutable.

    An explicit null clears description / about_me to ""; any other
    field sent as null is a validation error.
    """
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    about_me: Optional[str] = Field(default=None, max_length=5000)
    header_content: Optional[Dict[str, Any]] = None
    interests: Optional[List[str]] = None
    deal_breakers: Optional[List[str]] = None
    form_questions: Optional[List[FormQuestion]] = None
    social_links: Optional[Dict[str, Any]] = None
    preferences: Optional[Dict[str, Any]] = None
    is_public: Optional[bool] = None
    is_active: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None

    model_config = {"extra": "forbid"}

    @field_validator("description", "about_me", mode="before")
    @classmethod
    def null_clears_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator(
        "title", "header_content", "interests", "deal_breakers", "form_questions",
        "social_links", "preferences", "is_public", "is_active", "settings",
    )
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may not be null")
        return value

    def changes(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        if "form_questions" in data:
            data["form_questions"] = [q.as_dict() for q in self.form_questions or []]
        return data


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class _DocFields(BaseModel):
    id: uuid.UUID
    slug: str
    title: str
    description: str = ""
    about_me: str = ""
    header_content: Dict[str, Any] = Field(default_factory=dict)
    interests: List[str] = Field(default_factory=list)
    deal_breakers: List[str] = Field(default_factory=list)
    form_questions: List[Dict[str, Any]] = Field(default_factory=list)
    social_links: Dict[str, Any] = Field(default_factory=dict)
    preferences: Dict[str, Any] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    is_public: bool = True
    view_count: int = 0
    application_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DateMeDocResponse(_DocFields):
    """Owner view."""
    user_id: uuid.UUID


class DocOwnerSummary(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class PublicDateMeDocResponse(_DocFields):
    """Public view by slug. Never carries the owner's user_id."""
    owner: Optional[DocOwnerSummary] = None


class DocEnvelope(BaseModel):
    message: Optional[str] = None
    doc: DateMeDocResponse


class PublicDocEnvelope(BaseModel):
    doc: PublicDateMeDocResponse


class DocListResponse(BaseModel):
    docs: List[DateMeDocResponse]


class MatchScoreSummary(BaseModel):
    id: uuid.UUID
    text_match_score: Optional[int] = None
    url_context_score: Optional[int] = None
    overall_score: int
    recommendation: Optional[str] = None
    compatibility_breakdown: Dict[str, Any] = Field(default_factory=dict)
    green_flags: List[Any] = Field(default_factory=list)
    red_flags: List[Any] = Field(default_factory=list)
    date_ideas: List[Any] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DocApplicationResponse(BaseModel):
    id: uuid.UUID
    date_me_doc_id: uuid.UUID
    applicant_user_id: Optional[uuid.UUID] = None
    applicant_name: str
    applicant_email: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    social_links: List[Dict[str, Any]] = Field(default_factory=list)
    status: str
    match_score: Optional[float] = None
    compatibility_data: Optional[Dict[str, Any]] = None
    analysis_completed: bool = False
    created_at: Optional[datetime] = None
    matchmaking_scores: List[MatchScoreSummary] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class DocApplicationList(BaseModel):
    applications: List[DocApplicationResponse]
    total: int


class DocApplicationEnvelope(BaseModel):
    message: str
    application: DocApplicationResponse
