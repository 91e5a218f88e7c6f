"""
DateMeDoc Backend — Dating Form Routes
========================================

All routes require a bearer token and only ever see the caller's forms.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser, get_current_user
from datemedoc.database import get_db_session
from datemedoc.schemas.application import FormApplicationList
from datemedoc.schemas.common import ErrorResponse, MessageResponse
from datemedoc.schemas.form import FormCreate, FormEnvelope, FormListResponse, FormUpdate
from datemedoc.services.form_service import form_service

router = APIRouter(
    prefix="/api/forms",
    tags=["Forms"],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


@router.post("", status_code=201, response_model=FormEnvelope, responses={400: {"model": ErrorResponse}})
async def create_form(
    body: FormCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormEnvelope:
    return FormEnvelope(form=await form_service.create_form(db, user, body))


@router.get("", response_model=FormListResponse)
async def list_forms(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormListResponse:
    return FormListResponse(forms=await form_service.list_forms(db, user))


@router.get("/{form_id}", response_model=FormEnvelope)
async def get_form(
    form_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormEnvelope:
    return FormEnvelope(form=await form_service.get_form(db, user, form_id))


@router.put("/{form_id}", response_model=FormEnvelope)
async def update_form(
    form_id: UUID,
    body: FormUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormEnvelope:
    return FormEnvelope(form=await form_service.update_form(db, user, form_id, body))


@router.delete("/{form_id}", response_model=MessageResponse)
async def delete_form(
    form_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await form_service.delete_form(db, user, form_id)
    return MessageResponse(message="Form deleted successfully")


@router.get("/{form_id}/applications", response_model=FormApplicationList)
async def list_form_applications(
    form_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormApplicationList:
    items = await form_service.list_form_applications(db, user, form_id)
    return FormApplicationList(applications=items)
