"""
DateMeDoc Backend — Application Schemas
=========================================

What:  Request/response contracts for /api/applications: date-me-doc
       submissions, their status, ad-hoc match analysis and the form
       application inbox (list, AI selection, status changes).
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, HttpUrl, model_validator

from datemedoc.models.form import FORM_APPLICATION_STATUSES
from datemedoc.schemas.profile import LinkType


class SubmittedLink(BaseModel):
    type: LinkType
    url: HttpUrl
    handle: Optional[str] = Field(default=None, max_length=100)

    def as_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "url": str(self.url), "handle": self.handle}


class ApplicationSubmit(BaseModel):
    """Body of POST /api/applications/{slug}/apply."""
    applicant_name: str = Field(min_length=2, max_length=100)
    applicant_email: EmailStr
    answers: Dict[str, Any] = Field(default_factory=dict)
    submitted_links: List[SubmittedLink] = Field(min_length=1)


class SubmittedApplication(BaseModel):
    id: uuid.UUID
    status: str
    submitted_at: datetime


class ApplicationSubmitResponse(BaseModel):
    message: str = "Application submitted successfully"
    application: SubmittedApplication


class ApplicationScore(BaseModel):
    overall_score: int
    recommendation: Optional[str] = None
    green_flags: List[Any] = Field(default_factory=list)
    date_ideas: List[Any] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ApplicationStatusDetail(BaseModel):
    id: uuid.UUID
    status: str
    match_score: Optional[float] = None
    analysis_completed: bool = False
    created_at: Optional[datetime] = None
    matchmaking_scores: List[ApplicationScore] = Field(default_factory=list)


class ApplicationStatusResponse(BaseModel):
    application: ApplicationStatusDetail


class AnalyzeMatchRequest(BaseModel):
    """
    Ad-hoc owner/applicant comparison. camelCase keys are accepted as well.
    """
    doc_owner_profile: Optional[Dict[str, Any]] = Field(default=None, alias="docOwnerProfile")
    doc_preferences: Dict[str, Any] = Field(default_factory=dict, alias="docPreferences")
    applicant_profile: Optional[Dict[str, Any]] = Field(default=None, alias="applicantProfile")
    application_answers: Dict[str, Any] = Field(default_factory=dict, alias="applicationAnswers")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def both_profiles(self) -> "AnalyzeMatchRequest":
        if not self.doc_owner_profile or not self.applicant_profile:
            raise ValueError("Doc owner profile and applicant profile are required")
        return self


class MatchAnalysis(BaseModel):
    compatibility_score: Optional[float] = None
    compatibility_breakdown: Dict[str, Any] = Field(default_factory=dict)
    preference_match_score: Optional[float] = None
    answer_quality_score: Optional[float] = None
    authenticity_score: Optional[float] = None
    standout_answers: List[Any] = Field(default_factory=list)
    recommendation: Optional[str] = None
    summary: Optional[str] = None
    compatibility: Dict[str, Any] = Field(default_factory=dict)


class AnalyzeMatchResponse(BaseModel):
    success: bool = True
    analysis: MatchAnalysis


# ── Form application inbox ────────────────────────────────────────────────

FormApplicationStatus = Literal[FORM_APPLICATION_STATUSES]


class FormApplicationItem(BaseModel):
    """List-item shape shown in the owner's inbox."""
    id: uuid.UUID
    form_id: uuid.UUID
    form_name: Optional[str] = None
    applicant_name: Optional[str] = None
    applicant_email: Optional[str] = None
    based_in: Optional[str] = None
    status: str
    ai_score: Optional[int] = None
    match_factors: List[Dict[str, Any]] = Field(default_factory=list)
    applicant_data: Dict[str, Any] = Field(default_factory=dict)
    applied_on: Optional[datetime] = None


class FormApplicationList(BaseModel):
    success: bool = True
    applications: List[FormApplicationItem]


class AISelectRequest(BaseModel):
    limit: int = Field(default=3, ge=1, le=50)


class AISelectResponse(BaseModel):
    success: bool = True
    top_candidates: List[FormApplicationItem]
    message: str


class FormApplicationStatusUpdate(BaseModel):
    status: FormApplicationStatus


class FormApplicationEnvelope(BaseModel):
    success: bool = True
    application: FormApplicationItem
