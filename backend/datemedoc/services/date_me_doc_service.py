"""
DateMeDoc Backend — Date-Me-Doc Service
=========================================

What:  Doc CRUD plus the owner's view of the applications a doc received.
Why:   Keeps ownership and slug rules out of the route handlers.
How:   Resolves the caller's profile through ProfileService, then loads and
       checks the doc in the same session.
Who:   routes/docs.py.
When:  Every /api/docs request.

Access rules:
    public   GET by slug; 404 when missing, 403 when deactivated
    owner    PATCH / DELETE / applications by id; 403 for anyone else

Query plan (public view):
    SELECT * FROM date_me_docs WHERE slug = :slug   → idx_date_me_docs_slug

Design Decision:
    The service holds no per-request state. The session and the caller are
    arguments to every method; the profile service is a constructor argument.
"""

import logging
import re
import uuid
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser
from datemedoc.database import utcnow
from datemedoc.exceptions import (
    DatabaseError,
    DateMeDocError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from datemedoc.models.analysis import MatchmakingScore
from datemedoc.models.application import APPLICATION_STATUSES, Application
from datemedoc.models.date_me_doc import DateMeDoc
from datemedoc.models.profile import UserProfile
from datemedoc.schemas.date_me_doc import (
    SLUG_PATTERN,
    DateMeDocCreate,
    DateMeDocUpdate,
    DocApplicationList,
    DocApplicationResponse,
    MatchScoreSummary,
)
from datemedoc.services.profile_service import ProfileService, profile_service

logger = logging.getLogger(__name__)

DEFAULT_APPLICATION_PAGE = 50

_SLUG = re.compile(SLUG_PATTERN)


class DateMeDocService:
    def __init__(self, profiles: Optional[ProfileService] = None):
        self.profiles = profiles or profile_service

    async def create_doc(
        self, db: AsyncSession, user: AuthUser, data: DateMeDocCreate
    ) -> DateMeDoc:
        """
        Raises:
            ValidationError: slug taken, or no valid slug derivable from the title
        """
        slug = data.resolved_slug()
        if not (3 <= len(slug) <= 100) or not _SLUG.match(slug):
            raise ValidationError(
                "Could not derive a valid slug from the title. Please provide one.",
                field="slug",
            )

        try:
            owner = await self.profiles.get_or_create(db, user)

            existing = await db.execute(select(DateMeDoc.id).where(DateMeDoc.slug == slug))
            if existing.scalar_one_or_none() is not None:
                raise ValidationError("Slug already taken. Please choose another.", field="slug")

            description = data.description or data.about_me or ""
            doc = DateMeDoc(
                user_id=owner.id,
                slug=slug,
                title=data.title,
                description=description,
                about_me=data.about_me or description,
                header_content=data.header_content,
                interests=data.interests,
                deal_breakers=data.deal_breakers,
                form_questions=data.questions(),
                social_links=data.social_links,
                preferences=data.preferences,
                is_public=data.is_public,
                settings=data.settings,
            )
            db.add(doc)
            await db.flush()
            logger.info("Doc %s created with slug '%s'", doc.id, slug)
            return doc
        except DateMeDocError:
            raise
        except Exception as e:
            logger.error("Database error creating doc: %s", str(e))
            raise DatabaseError(
                message="Could not create your date-me-doc. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def list_docs(self, db: AsyncSession, user: AuthUser) -> List[DateMeDoc]:
        try:
            owner = await self.profiles.get_by_auth_id(db, user.id)
            if owner is None:
                return []
            result = await db.execute(
                select(DateMeDoc)
                .where(DateMeDoc.user_id == owner.id)
                .order_by(DateMeDoc.created_at.desc())
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing docs: %s", str(e))
            raise DatabaseError(
                message="Could not load your docs. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_public_doc(
        self, db: AsyncSession, slug: str
    ) -> Tuple[DateMeDoc, Optional[UserProfile]]:
        """Public view by slug. Each call counts as one view."""
        result = await db.execute(select(DateMeDoc).where(DateMeDoc.slug == slug))
        doc = result.scalar_one_or_none()
        if doc is None:
            raise NotFoundError(resource="date-me-doc", resource_id=slug)
        if not doc.is_active:
            raise PermissionDeniedError("This date-me-doc is no longer active")

        doc.view_count = (doc.view_count or 0) + 1
        await db.flush()

        result = await db.execute(select(UserProfile).where(UserProfile.id == doc.user_id))
        return doc, result.scalar_one_or_none()

    async def _owned_doc(
        self,
        db: AsyncSession,
        user: AuthUser,
        doc_id: uuid.UUID,
        missing_is_forbidden: bool = False,
    ) -> DateMeDoc:
        owner = await self.profiles.get_by_auth_id(db, user.id)
        result = await db.execute(select(DateMeDoc).where(DateMeDoc.id == doc_id))
        doc = result.scalar_one_or_none()
        if doc is None:
            if missing_is_forbidden:
                raise PermissionDeniedError("Doc not found or you don't have permission to delete it")
            raise NotFoundError(resource="date-me-doc", resource_id=str(doc_id))
        if owner is None or doc.user_id != owner.id:
            raise PermissionDeniedError("You don't have permission to modify this doc")
        return doc

    async def update_doc(
        self, db: AsyncSession, user: AuthUser, doc_id: uuid.UUID, data: DateMeDocUpdate
    ) -> DateMeDoc:
        doc = await self._owned_doc(db, user, doc_id)
        changes = data.changes()
        try:
            for key, value in changes.items():
                setattr(doc, key, value)
            doc.updated_at = utcnow()
            await db.flush()
        except Exception as e:
            logger.error("Database error updating doc %s: %s", doc_id, str(e))
            raise DatabaseError(
                message="Could not update the doc. Please try again.",
                context={"doc_id": str(doc_id), "error_type": type(e).__name__},
            )
        logger.info("Doc %s updated (%s)", doc.id, ", ".join(sorted(changes)))
        return doc

    async def delete_doc(self, db: AsyncSession, user: AuthUser, doc_id: uuid.UUID) -> None:
        doc = await self._owned_doc(db, user, doc_id, missing_is_forbidden=True)
        await db.delete(doc)
        await db.flush()
        logger.info("Doc %s deleted", doc_id)

    async def list_applications(
        self,
        db: AsyncSession,
        user: AuthUser,
        doc_id: uuid.UUID,
        status: Optional[str] = None,
        limit: int = DEFAULT_APPLICATION_PAGE,
        offset: int = 0,
    ) -> DocApplicationList:
        """Newest first, each with every stored matchmaking score."""
        await self._owned_doc(db, user, doc_id)

        filters = [Application.date_me_doc_id == doc_id]
        if status:
            filters.append(Application.status == status)

        try:
            count = await db.execute(select(func.count(Application.id)).where(*filters))
            total = count.scalar_one()

            result = await db.execute(
                select(Application)
                .where(*filters)
                .order_by(Application.created_at.desc())
                .limit(limit)
                .offset(offset)
            )
            applications = list(result.scalars().all())

            scores: Dict[uuid.UUID, List[MatchmakingScore]] = {}
            if applications:
                result = await db.execute(
                    select(MatchmakingScore)
                    .where(MatchmakingScore.application_id.in_([a.id for a in applications]))
                    .order_by(MatchmakingScore.created_at.desc())
                )
                for score in result.scalars().all():
                    scores.setdefault(score.application_id, []).append(score)
        except Exception as e:
            logger.error("Database error listing applications for doc %s: %s", doc_id, str(e))
            raise DatabaseError(
                message="Could not load applications. Please try again.",
                context={"error_type": type(e).__name__},
            )

        items = []
        for application in applications:
            item = DocApplicationResponse.model_validate(application)
            item.matchmaking_scores = [
                MatchScoreSummary.model_validate(s) for s in scores.get(application.id, [])
            ]
            items.append(item)
        return DocApplicationList(applications=items, total=total)

    async def update_application_status(
        self,
        db: AsyncSession,
        user: AuthUser,
        doc_id: uuid.UUID,
        application_id: uuid.UUID,
        status: str,
    ) -> Application:
        if status not in APPLICATION_STATUSES:
            raise ValidationError(
                f"Invalid status. Must be one of: {', '.join(APPLICATION_STATUSES)}",
                field="status",
            )
        await self._owned_doc(db, user, doc_id)

        result = await db.execute(
            select(Application).where(
                Application.id == application_id,
                Application.date_me_doc_id == doc_id,
            )
        )
        application = result.scalar_one_or_none()
        if application is None:
            raise NotFoundError(resource="application", resource_id=str(application_id))

        application.status = status
        application.updated_at = utcnow()
        await db.flush()
        logger.info("Application %s moved to '%s'", application_id, status)
        return application


date_me_doc_service = DateMeDocService()
