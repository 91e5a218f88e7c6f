"""
DateMeDoc Backend — User Routes
=================================

What:  /api/users: the caller's profile, onboarding, AI helpers, digital
       footprint analysis, discovery and application scoring.
How:   Every route requires a bearer token except the stateless AI helpers
       (extract-content, analyze-profile, calculate-compatibility), which
       the onboarding UI calls before a profile exists.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser, get_current_user
from datemedoc.database import get_db_session
from datemedoc.schemas.common import ErrorResponse
from datemedoc.schemas.profile import (
    AnalysisListResponse,
    AnalyzeProfileRequest,
    AnalyzeProfileResponse,
    CalculateCompatibilityRequest,
    CompatibilityResponse,
    ContentAnalysisResponse,
    ExtractContentRequest,
    ExtractContentResponse,
    FootprintResponse,
    MatchApplicationRequest,
    MatchApplicationResponse,
    MatchCandidate,
    MatchesResponse,
    OnboardingRequest,
    ProfileCreate,
    ProfileEnvelope,
    ProfileResponse,
    ProfileUpdate,
)
from datemedoc.services.profile_service import DEFAULT_MATCH_LIMIT, profile_service

router = APIRouter(prefix="/api/users", tags=["Users"])


# ── Profile ───────────────────────────────────────────────────────────────


@router.get("/profile", response_model=ProfileEnvelope, responses={401: {"model": ErrorResponse}})
async def get_profile(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileEnvelope:
    profile = await profile_service.get_or_create(db, user)
    return ProfileEnvelope(profile=ProfileResponse.model_validate(profile))


@router.post(
    "/profile",
    status_code=201,
    response_model=ProfileEnvelope,
    responses={400: {"model": ErrorResponse}},
)
async def create_profile(
    body: ProfileCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileEnvelope:
    profile = await profile_service.create_profile(db, user, body)
    return ProfileEnvelope(
        message="Profile created successfully",
        profile=ProfileResponse.model_validate(profile),
    )


@router.put(
    "/profile",
    response_model=ProfileEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_profile(
    body: ProfileUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileEnvelope:
    profile = await profile_service.update_profile(db, user, body)
    return ProfileEnvelope(
        message="Profile updated successfully",
        profile=ProfileResponse.model_validate(profile),
    )


@router.post("/onboarding", response_model=ProfileEnvelope, responses={400: {"model": ErrorResponse}})
async def onboarding(
    body: OnboardingRequest,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileEnvelope:
    profile = await profile_service.complete_onboarding(db, user, body)
    return ProfileEnvelope(
        message="Onboarding completed successfully",
        profile=ProfileResponse.model_validate(profile),
    )


# ── Stateless AI helpers ──────────────────────────────────────────────────


@router.post(
    "/extract-content",
    response_model=ExtractContentResponse,
    responses={400: {"model": ErrorResponse}},
)
async def extract_content(body: ExtractContentRequest) -> ExtractContentResponse:
    content = await profile_service.extract_content(str(body.url), body.type)
    return ExtractContentResponse(content=content)


@router.post(
    "/analyze-profile",
    response_model=AnalyzeProfileResponse,
    responses={503: {"model": ErrorResponse}},
)
async def analyze_profile(body: AnalyzeProfileRequest) -> AnalyzeProfileResponse:
    analysis = await profile_service.analyze_profile_body(body.corpus())
    return AnalyzeProfileResponse(analysis=analysis)


@router.post(
    "/calculate-compatibility",
    response_model=CompatibilityResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def calculate_compatibility(body: CalculateCompatibilityRequest) -> CompatibilityResponse:
    compatibility = await profile_service.calculate_compatibility(
        body.profile1, body.profile2, body.preferences
    )
    return CompatibilityResponse(compatibility=compatibility)


# ── Footprint, discovery, scoring ─────────────────────────────────────────


@router.post(
    "/analyze",
    response_model=FootprintResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Analyze my digital footprint",
)
async def analyze_footprint(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FootprintResponse:
    result = await profile_service.analyze_footprint(db, user)
    return FootprintResponse(**result)


@router.get("/analysis", response_model=AnalysisListResponse)
async def list_analyses(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AnalysisListResponse:
    rows = await profile_service.list_analyses(db, user)
    return AnalysisListResponse(analyses=[ContentAnalysisResponse.model_validate(r) for r in rows])


@router.get("/matches", response_model=MatchesResponse, responses={404: {"model": ErrorResponse}})
async def matches(
    limit: int = Query(default=DEFAULT_MATCH_LIMIT, ge=1, le=100),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MatchesResponse:
    scored = await profile_service.find_matches(db, user, limit=limit)
    return MatchesResponse(
        matches=[
            MatchCandidate(
                profile=ProfileResponse.model_validate(profile),
                match_score=breakdown.score,
                match_factors=breakdown.factors_as_dicts(),
            )
            for profile, breakdown in scored
        ]
    )


@router.post(
    "/match-application",
    response_model=MatchApplicationResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def match_application(
    body: MatchApplicationRequest,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MatchApplicationResponse:
    result, score_id = await profile_service.match_application(
        db, user, body.application_id, body.include_url_matching
    )
    return MatchApplicationResponse(match_result=result, match_score_id=score_id)
