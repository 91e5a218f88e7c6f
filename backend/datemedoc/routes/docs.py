"""
DateMeDoc Backend — Date-Me-Doc Routes
========================================

What:  /api/docs: create and manage date-me-docs, view one publicly by slug,
       and review the applications a doc received.
How:   Thin handlers; ownership and validation live in DateMeDocService.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser, get_current_user
from datemedoc.database import get_db_session
from datemedoc.schemas.common import ErrorResponse, MessageResponse
from datemedoc.schemas.date_me_doc import (
    ApplicationStatus,
    ApplicationStatusUpdate,
    DateMeDocCreate,
    DateMeDocResponse,
    DateMeDocUpdate,
    DocApplicationEnvelope,
    DocApplicationList,
    DocApplicationResponse,
    DocEnvelope,
    DocListResponse,
    DocOwnerSummary,
    PublicDateMeDocResponse,
    PublicDocEnvelope,
)
from datemedoc.services.date_me_doc_service import DEFAULT_APPLICATION_PAGE, date_me_doc_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/docs", tags=["Date-Me-Docs"])


@router.post(
    "",
    status_code=201,
    response_model=DocEnvelope,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Create a date-me-doc",
)
async def create_doc(
    body: DateMeDocCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocEnvelope:
    doc = await date_me_doc_service.create_doc(db, user, body)
    return DocEnvelope(
        message="Date-me-doc created successfully",
        doc=DateMeDocResponse.model_validate(doc),
    )


@router.get("", response_model=DocListResponse, summary="List my date-me-docs")
async def list_docs(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocListResponse:
    docs = await date_me_doc_service.list_docs(db, user)
    return DocListResponse(docs=[DateMeDocResponse.model_validate(d) for d in docs])


@router.get(
    "/{slug}",
    response_model=PublicDocEnvelope,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Public view of a date-me-doc",
)
async def get_doc(
    slug: str,
    db: AsyncSession = Depends(get_db_session),
) -> PublicDocEnvelope:
    doc, owner = await date_me_doc_service.get_public_doc(db, slug)
    public = PublicDateMeDocResponse.model_validate(doc)
    public.owner = DocOwnerSummary.model_validate(owner) if owner else None
    return PublicDocEnvelope(doc=public)


@router.patch(
    "/{doc_id}",
    response_model=DocEnvelope,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_doc(
    doc_id: UUID,
    body: DateMeDocUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocEnvelope:
    doc = await date_me_doc_service.update_doc(db, user, doc_id, body)
    return DocEnvelope(
        message="Date-me-doc updated successfully",
        doc=DateMeDocResponse.model_validate(doc),
    )


@router.delete(
    "/{doc_id}",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse}},
)
async def delete_doc(
    doc_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await date_me_doc_service.delete_doc(db, user, doc_id)
    return MessageResponse(message="Date-me-doc deleted successfully")


@router.get(
    "/{doc_id}/applications",
    response_model=DocApplicationList,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Applications received by one of my docs",
)
async def list_doc_applications(
    doc_id: UUID,
    status: Optional[ApplicationStatus] = Query(default=None),
    limit: int = Query(default=DEFAULT_APPLICATION_PAGE, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocApplicationList:
    return await date_me_doc_service.list_applications(
        db, user, doc_id, status=status, limit=limit, offset=offset
    )


@router.patch(
    "/{doc_id}/applications/{application_id}/status",
    response_model=DocApplicationEnvelope,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def update_doc_application_status(
    doc_id: UUID,
    application_id: UUID,
    body: ApplicationStatusUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocApplicationEnvelope:
    application = await date_me_doc_service.update_application_status(
        db, user, doc_id, application_id, body.status
    )
    return DocApplicationEnvelope(
        message="Application status updated",
        application=DocApplicationResponse.model_validate(application),
    )
