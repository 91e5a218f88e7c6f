"""
DateMeDoc Backend — Application Routes
========================================

Date-me-doc applications:
    POST  /api/applications/{slug}/apply             submit (anonymous or signed in)
    GET   /api/applications/status/{application_id}  applicant status lookup
    POST  /api/applications/analyze-match            ad-hoc AI match analysis

Form application inbox (signed in, owner-scoped):
    GET   /api/applications                          every application to my forms
    POST  /api/applications/ai-select                top new candidates by score
    PATCH /api/applications/{id}/status              new | shortlisted | archived
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser, get_current_user, get_optional_user
from datemedoc.database import get_db_session
from datemedoc.schemas.application import (
    AISelectRequest,
    AISelectResponse,
    AnalyzeMatchRequest,
    AnalyzeMatchResponse,
    ApplicationStatusResponse,
    ApplicationSubmit,
    ApplicationSubmitResponse,
    FormApplicationEnvelope,
    FormApplicationList,
    FormApplicationStatusUpdate,
    SubmittedApplication,
)
from datemedoc.schemas.common import ErrorResponse
from datemedoc.services.application_service import application_service
from datemedoc.services.form_service import form_service

router = APIRouter(prefix="/api/applications", tags=["Applications"])


@router.post(
    "/{slug}/apply",
    status_code=201,
    response_model=ApplicationSubmitResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Apply to a date-me-doc",
)
async def apply(
    slug: str,
    body: ApplicationSubmit,
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationSubmitResponse:
    application = await application_service.submit(db, slug, body, user)
    return ApplicationSubmitResponse(
        application=SubmittedApplication(
            id=application.id,
            status=application.status,
            submitted_at=application.created_at,
        )
    )


@router.get(
    "/status/{application_id}",
    response_model=ApplicationStatusResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def application_status(
    application_id: UUID,
    email: Optional[str] = Query(default=None, description="Email used when applying"),
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationStatusResponse:
    detail = await application_service.get_status(db, application_id, user=user, email=email)
    return ApplicationStatusResponse(application=detail)


@router.post(
    "/analyze-match",
    response_model=AnalyzeMatchResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def analyze_match(body: AnalyzeMatchRequest) -> AnalyzeMatchResponse:
    analysis = await application_service.analyze_match(body)
    return AnalyzeMatchResponse(analysis=analysis)


@router.get("", response_model=FormApplicationList, summary="Applications to my forms")
async def list_applications(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormApplicationList:
    items = await form_service.list_owner_applications(db, user)
    return FormApplicationList(applications=items)


@router.post("/ai-select", response_model=AISelectResponse)
async def ai_select(
    body: Optional[AISelectRequest] = None,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AISelectResponse:
    body = body or AISelectRequest()
    top = await form_service.ai_select(db, user, limit=body.limit)
    return AISelectResponse(
        top_candidates=top,
        message=f"AI selected top {len(top)} candidates based on compatibility",
    )


@router.patch(
    "/{application_id}/status",
    response_model=FormApplicationEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_application_status(
    application_id: UUID,
    body: FormApplicationStatusUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormApplicationEnvelope:
    item = await form_service.update_application_status(db, user, application_id, body.status)
    return FormApplicationEnvelope(application=item)
