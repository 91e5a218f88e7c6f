"""
DateMeDoc Backend — Dating Form Service
=========================================

What:  Owner-scoped CRUD for dating forms and the inbox of applications
       they receive, including AI selection of the best new candidates.
Why:   Forms are the lightweight alternative to a full date-me-doc; their
       applications are triaged by the owner rather than scored by Gemini.
Who:   routes/forms.py and routes/applications.py.

Every lookup is filtered by the caller's profile id, so a form or
application owned by someone else is indistinguishable from a missing
one (404).

AI selection:
    new applications → scoring.candidate_score(owner, applicant)
    → ai_score + match_factors persisted on every scored row
    → top `limit` returned, best first
"""

import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser
from datemedoc.database import utcnow
from datemedoc.exceptions import DatabaseError, DateMeDocError, NotFoundError, ValidationError
from datemedoc.models.form import FORM_APPLICATION_STATUSES, DatingForm, FormApplication
from datemedoc.models.profile import UserProfile
from datemedoc.schemas.application import FormApplicationItem
from datemedoc.schemas.form import FormCreate, FormResponse, FormUpdate
from datemedoc.services import scoring
from datemedoc.services.profile_service import ProfileService, profile_service
from datemedoc.services.scoring import MatchProfile

logger = logging.getLogger(__name__)

DEFAULT_AI_SELECT_LIMIT = 3


def application_item(application: FormApplication, form_title: Optional[str]) -> FormApplicationItem:
    return FormApplicationItem(
        id=application.id,
        form_id=application.form_id,
        form_name=form_title,
        applicant_name=application.field("Name") or application.field("full_name"),
        applicant_email=application.field("Email"),
        based_in=application.field("Location"),
        status=application.status,
        ai_score=application.ai_score,
        match_factors=application.match_factors or [],
        applicant_data=application.applicant_data or {},
        applied_on=application.created_at,
    )


def _form_response(form: DatingForm, applications_count: int = 0) -> FormResponse:
    response = FormResponse.model_validate(form)
    response.applications_count = applications_count
    return response


class FormService:
    def __init__(self, profiles: Optional[ProfileService] = None):
        self.profiles = profiles or profile_service

    # ── Forms ─────────────────────────────────────────────────────────────

    async def create_form(self, db: AsyncSession, user: AuthUser, data: FormCreate) -> FormResponse:
        try:
            owner = await self.profiles.get_or_create(db, user)
            form = DatingForm(
                owner_id=owner.id,
                title=data.title,
                description=data.description,
                fields=data.fields,
                status=data.status,
            )
            db.add(form)
            await db.flush()
            logger.info("Form %s created", form.id)
            return _form_response(form)
        except DateMeDocError:
            raise
        except Exception as e:
            logger.error("Database error creating form: %s", str(e))
            raise DatabaseError(
                message="Could not create the form. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def list_forms(self, db: AsyncSession, user: AuthUser) -> List[FormResponse]:
        try:
            owner = await self.profiles.get_by_auth_id(db, user.id)
            if owner is None:
                return []
            counts = (
                select(FormApplication.form_id, func.count(FormApplication.id).label("n"))
                .group_by(FormApplication.form_id)
                .subquery()
            )
            result = await db.execute(
                select(DatingForm, func.coalesce(counts.c.n, 0))
                .outerjoin(counts, counts.c.form_id == DatingForm.id)
                .where(DatingForm.owner_id == owner.id)
                .order_by(DatingForm.created_at.desc())
            )
            return [_form_response(form, count) for form, count in result.all()]
        except Exception as e:
            logger.error("Database error listing forms: %s", str(e))
            raise DatabaseError(
                message="Could not load your forms. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def _owned_form(self, db: AsyncSession, user: AuthUser, form_id: uuid.UUID) -> DatingForm:
        owner = await self.profiles.get_by_auth_id(db, user.id)
        form = None
        if owner is not None:
            result = await db.execute(
                select(DatingForm).where(DatingForm.id == form_id, DatingForm.owner_id == owner.id)
            )
            form = result.scalar_one_or_none()
        if form is None:
            raise NotFoundError(resource="form", resource_id=str(form_id))
        return form

    async def get_form(self, db: AsyncSession, user: AuthUser, form_id: uuid.UUID) -> FormResponse:
        form = await self._owned_form(db, user, form_id)
        result = await db.execute(
            select(func.count(FormApplication.id)).where(FormApplication.form_id == form.id)
        )
        return _form_response(form, result.scalar_one())

    async def update_form(
        self, db: AsyncSession, user: AuthUser, form_id: uuid.UUID, data: FormUpdate
    ) -> FormResponse:
        form = await self._owned_form(db, user, form_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(form, key, value)
        form.updated_at = utcnow()
        await db.flush()
        return _form_response(form)

    async def delete_form(self, db: AsyncSession, user: AuthUser, form_id: uuid.UUID) -> None:
        form = await self._owned_form(db, user, form_id)
        await db.delete(form)
        await db.flush()
        logger.info("Form %s deleted", form_id)

    # ── Applications ──────────────────────────────────────────────────────

    async def list_form_applications(
        self, db: AsyncSession, user: AuthUser, form_id: uuid.UUID
    ) -> List[FormApplicationItem]:
        form = await self._owned_form(db, user, form_id)
        result = await db.execute(
            select(FormApplication)
            .where(FormApplication.form_id == form.id)
            .order_by(FormApplication.created_at.desc())
        )
        return [application_item(a, form.title) for a in result.scalars().all()]

    async def _owner_applications(
        self, db: AsyncSession, owner_id: uuid.UUID, status: Optional[str] = None
    ) -> List[tuple]:
        query = (
            select(FormApplication, DatingForm.title)
            .join(DatingForm, DatingForm.id == FormApplication.form_id)
            .where(FormApplication.form_owner_id == owner_id)
            .order_by(FormApplication.created_at.desc())
        )
        if status:
            query = query.where(FormApplication.status == status)
        result = await db.execute(query)
        return list(result.all())

    async def list_owner_applications(
        self, db: AsyncSession, user: AuthUser
    ) -> List[FormApplicationItem]:
        owner = await self.profiles.get_by_auth_id(db, user.id)
        if owner is None:
            return []
        rows = await self._owner_applications(db, owner.id)
        return [application_item(a, title) for a, title in rows]

    async def ai_select(
        self, db: AsyncSession, user: AuthUser, limit: int = DEFAULT_AI_SELECT_LIMIT
    ) -> List[FormApplicationItem]:
        owner = await self.profiles.require_profile(db, user)
        rows = await self._owner_applications(db, owner.id, status="new")

        linked_ids = {a.applicant_user_id for a, _ in rows if a.applicant_user_id}
        linked: Dict[uuid.UUID, UserProfile] = {}
        if linked_ids:
            result = await db.execute(select(UserProfile).where(UserProfile.id.in_(linked_ids)))
            linked = {p.id: p for p in result.scalars().all()}

        mine = MatchProfile.from_model(owner)
        scored = []
        for application, title in rows:
            profile = linked.get(application.applicant_user_id)
            if profile is not None:
                applicant = MatchProfile.from_model(profile)
            else:
                data = {str(k).lower(): v for k, v in (application.applicant_data or {}).items()}
                applicant = MatchProfile.from_mapping(data)
            breakdown = scoring.candidate_score(mine, applicant)
            application.ai_score = breakdown.score
            application.match_factors = breakdown.factors_as_dicts()
            scored.append((application, title))
        await db.flush()

        scored.sort(key=lambda pair: pair[0].ai_score or 0, reverse=True)
        logger.info("AI selection scored %d new applications for %s", len(scored), owner.id)
        return [application_item(a, title) for a, title in scored[:limit]]

    async def update_application_status(
        self, db: AsyncSession, user: AuthUser, application_id: uuid.UUID, status: str
    ) -> FormApplicationItem:
        if status not in FORM_APPLICATION_STATUSES:
            raise ValidationError(
                f"Invalid status. Must be one of: {', '.join(FORM_APPLICATION_STATUSES)}",
                field="status",
            )
        owner = await self.profiles.get_by_auth_id(db, user.id)
        row = None
        if owner is not None:
            result = await db.execute(
                select(FormApplication, DatingForm.title)
                .join(DatingForm, DatingForm.id == FormApplication.form_id)
                .where(
                    FormApplication.id == application_id,
                    FormApplication.form_owner_id == owner.id,
                )
            )
            row = result.one_or_none()
        if row is None:
            raise NotFoundError(resource="application", resource_id=str(application_id))

        application, title = row
        application.status = status
        await db.flush()
        return application_item(application, title)


form_service = FormService()
