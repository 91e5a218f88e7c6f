"""
DateMeDoc Backend — Application Service
=========================================

What:  Date-me-doc applications: submission, applicant status lookup,
       ad-hoc AI match analysis and the background analysis of a submitted
       application.
Why:   Applicants are anonymous by default, so submission has to validate
       everything itself and defer the slow AI work to a queued job.
How:   Synchronous checks and inserts in the request transaction; link
       extraction and Gemini scoring run later in process_application.
Who:   routes/applications.py and AnalysisWorker (content_extraction jobs).
When:  On every apply and status lookup, and once per content_extraction job.

Submission Flow (POST /api/applications/{slug}/apply):
    1. Resolve doc by slug            404 missing · 400 inactive
    2. Check required answers         400 naming the first unanswered question
    3. Link applicant profile         only when the caller is signed in
    4. Insert application (pending), bump doc.application_count
    5. Queue content_extraction job   priority 5

Background Analysis (process_application):
    extract links → content_analysis rows → Gemini profile of the applicant
    → text match against the owner → when the owner has a stored analysis,
      overall = 0.7 × Gemini compatibility + 0.3 × answer preference match
    → matchmaking_scores row, application.analysis_completed = True
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser
from datemedoc.database import utcnow
from datemedoc.exceptions import (
    DatabaseError,
    DateMeDocError,
    NotFoundError,
    ValidationError,
)
from datemedoc.models.analysis import ContentAnalysis, MatchmakingScore
from datemedoc.models.application import Application
from datemedoc.models.date_me_doc import DateMeDoc
from datemedoc.models.profile import UserProfile
from datemedoc.schemas.application import (
    AnalyzeMatchRequest,
    ApplicationScore,
    ApplicationStatusDetail,
    ApplicationSubmit,
    MatchAnalysis,
)
from datemedoc.services.content_extractor import ContentExtractor, content_extractor
from datemedoc.services.gemini_service import gemini_service
from datemedoc.services.job_queue import CONTENT_EXTRACTION, enqueue_job
from datemedoc.services.llm_base import LLMService
from datemedoc.services.matching_service import MatchingService, matching_service
from datemedoc.services.profile_service import ProfileService, profile_service
from datemedoc.services.scoring import MatchProfile

logger = logging.getLogger(__name__)

LLM_COMPATIBILITY_WEIGHT = 0.7
ANSWER_MATCH_WEIGHT = 0.3


def _is_blank(answer: Any) -> bool:
    if answer is None:
        return True
    if isinstance(answer, str):
        return not answer.strip()
    if isinstance(answer, (list, dict)):
        return not answer
    return False


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class ApplicationService:
    def __init__(
        self,
        llm: Optional[LLMService] = None,
        extractor: Optional[ContentExtractor] = None,
        matcher: Optional[MatchingService] = None,
        profiles: Optional[ProfileService] = None,
    ):
        self.llm = llm or gemini_service
        self.extractor = extractor or content_extractor
        self.matcher = matcher or matching_service
        self.profiles = profiles or profile_service

    async def submit(
        self,
        db: AsyncSession,
        slug: str,
        data: ApplicationSubmit,
        user: Optional[AuthUser] = None,
    ) -> Application:
        """
        Raises:
            NotFoundError: no doc with this slug (→ 404)
            ValidationError: doc inactive or a required answer missing (→ 400)
            DatabaseError: insert failed (→ 500)
        """
        try:
            result = await db.execute(select(DateMeDoc).where(DateMeDoc.slug == slug))
            doc = result.scalar_one_or_none()
            if doc is None:
                raise NotFoundError(resource="date-me-doc", resource_id=slug)
            if not doc.is_active:
                raise ValidationError("This date-me-doc is no longer accepting applications")

            for question in doc.required_questions():
                if _is_blank(data.answers.get(str(question.get("id")))):
                    raise ValidationError(
                        f"Required question not answered: {question.get('question')}",
                        field="answers",
                        context={"question_id": str(question.get("id"))},
                    )

            applicant_id = None
            if user is not None:
                applicant = await self.profiles.get_by_auth_id(db, user.id)
                applicant_id = applicant.id if applicant else None

            application = Application(
                date_me_doc_id=doc.id,
                applicant_user_id=applicant_id,
                applicant_name=data.applicant_name,
                applicant_email=str(data.applicant_email),
                answers=data.answers,
                social_links=[link.as_dict() for link in data.submitted_links],
                status="pending",
            )
            db.add(application)
            doc.application_count = (doc.application_count or 0) + 1
            await db.flush()

            await enqueue_job(db, CONTENT_EXTRACTION, application.id, "application")
            logger.info("Application %s submitted to doc '%s'", application.id, slug)
            return application
        except DateMeDocError:
            raise
        except Exception as e:
            logger.error("Database error submitting application to '%s': %s", slug, str(e))
            raise DatabaseError(
                message="Could not submit your application. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_status(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        user: Optional[AuthUser] = None,
        email: Optional[str] = None,
    ) -> ApplicationStatusDetail:
        """
        Signed-in applicants see their own applications; anyone else must
        prove ownership with the email they applied with.
        """
        conditions = []
        if user is not None:
            profile = await self.profiles.get_by_auth_id(db, user.id)
            if profile is not None:
                conditions.append(Application.applicant_user_id == profile.id)
        if email:
            conditions.append(Application.applicant_email == email)
        if not conditions:
            raise ValidationError("Email is required to check application status", field="email")

        result = await db.execute(
            select(Application).where(Application.id == application_id, or_(*conditions))
        )
        application = result.scalar_one_or_none()
        if application is None:
            raise NotFoundError(resource="application", resource_id=str(application_id))

        result = await db.execute(
            select(MatchmakingScore)
            .where(MatchmakingScore.application_id == application.id)
            .order_by(MatchmakingScore.created_at.desc())
        )
        return ApplicationStatusDetail(
            id=application.id,
            status=application.status,
            match_score=application.match_score,
            analysis_completed=application.analysis_completed,
            created_at=application.created_at,
            matchmaking_scores=[ApplicationScore.model_validate(s) for s in result.scalars().all()],
        )

    async def analyze_match(self, request: AnalyzeMatchRequest) -> MatchAnalysis:
        compatibility = await self.llm.calculate_compatibility(
            request.doc_owner_profile, request.applicant_profile, request.doc_preferences
        )
        answers = await self.llm.analyze_application_match(
            request.doc_preferences,
            request.doc_owner_profile,
            request.application_answers,
            request.applicant_profile,
        )
        return MatchAnalysis(
            compatibility_score=compatibility.get("overall_compatibility_score"),
            compatibility_breakdown=compatibility.get("compatibility_breakdown") or {},
            preference_match_score=answers.get("preference_match_score"),
            answer_quality_score=answers.get("answer_quality_score"),
            authenticity_score=answers.get("authenticity_score"),
            standout_answers=answers.get("standout_answers") or [],
            recommendation=answers.get("recommendation") or compatibility.get("recommendation"),
            summary=answers.get("summary") or compatibility.get("summary"),
            compatibility=compatibility,
        )

    # ── Background analysis ───────────────────────────────────────────────

    async def _owner_analysis(self, db: AsyncSession, owner_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        result = await db.execute(
            select(ContentAnalysis)
            .where(
                ContentAnalysis.user_id == owner_id,
                ContentAnalysis.psychological_profile.is_not(None),
            )
            .order_by(ContentAnalysis.created_at.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return row.psychological_profile if row else None

    async def process_application(self, db: AsyncSession, application_id: uuid.UUID) -> MatchmakingScore:
        result = await db.execute(select(Application).where(Application.id == application_id))
        application = result.scalar_one_or_none()
        if application is None:
            raise NotFoundError(resource="application", resource_id=str(application_id))

        result = await db.execute(select(DateMeDoc).where(DateMeDoc.id == application.date_me_doc_id))
        doc = result.scalar_one_or_none()
        if doc is None:
            raise NotFoundError(resource="date-me-doc", resource_id=str(application.date_me_doc_id))

        result = await db.execute(select(UserProfile).where(UserProfile.id == doc.user_id))
        owner = result.scalar_one_or_none()
        if owner is None:
            raise NotFoundError(resource="profile", resource_id=str(doc.user_id))

        # ── Extract and analyze the applicant's links ─────────────────────
        extractions = await self.extractor.extract_many(application.social_links or [])
        corpus, metadata = self.extractor.aggregate(extractions)
        applicant_analysis: Optional[Dict[str, Any]] = None
        if corpus:
            applicant_analysis = await self.llm.analyze_profile(corpus, metadata)

        for item in extractions:
            if not item.result.success:
                continue
            row = ContentAnalysis(
                application_id=application.id,
                user_id=application.applicant_user_id,
                source_type=item.type,
                source_url=item.url,
                extracted_content=item.result.data,
                content_metadata={"extracted_at": item.result.data.get("extracted_at")},
            )
            if applicant_analysis:
                row.apply_profile(applicant_analysis)
            db.add(row)

        # ── Score against the owner ───────────────────────────────────────
        applicant_profile: Optional[UserProfile] = None
        if application.applicant_user_id:
            result = await db.execute(
                select(UserProfile).where(UserProfile.id == application.applicant_user_id)
            )
            applicant_profile = result.scalar_one_or_none()

        if applicant_profile is not None:
            applicant = MatchProfile.from_model(applicant_profile)
        else:
            applicant = MatchProfile.from_mapping(applicant_analysis or application.answers or {})
        match = await self.matcher.match_profiles(MatchProfile.from_model(owner), applicant)

        overall = match.overall_score
        recommendation = match.recommendation
        breakdown: Dict[str, Any] = dict(match.breakdown)
        flags: Dict[str, List[Any]] = {"green_flags": [], "red_flags": [], "date_ideas": []}
        llm_score: Optional[int] = None

        owner_analysis = await self._owner_analysis(db, owner.id)
        if owner_analysis and applicant_analysis:
            compatibility = await self.llm.calculate_compatibility(
                owner_analysis, applicant_analysis, doc.preferences
            )
            answer_match = await self.llm.analyze_application_match(
                doc.preferences, owner_analysis, application.answers or {}, applicant_analysis
            )
            llm_score = round(_number(compatibility.get("overall_compatibility_score")))
            overall = round(
                llm_score * LLM_COMPATIBILITY_WEIGHT
                + _number(answer_match.get("preference_match_score")) * ANSWER_MATCH_WEIGHT
            )
            recommendation = compatibility.get("recommendation") or recommendation
            breakdown["llm"] = compatibility.get("compatibility_breakdown") or {}
            breakdown["answers"] = answer_match
            for key in flags:
                flags[key] = list(compatibility.get(key) or [])

        score = MatchmakingScore(
            application_id=application.id,
            doc_owner_id=owner.id,
            applicant_id=application.applicant_user_id,
            text_match_score=match.text_match_score,
            url_context_score=llm_score,
            overall_score=overall,
            compatibility_breakdown=breakdown,
            recommendation=recommendation,
            **flags,
        )
        db.add(score)

        application.match_score = overall
        application.compatibility_data = {
            "overall_score": overall,
            "recommendation": recommendation,
            "breakdown": breakdown,
            "applicant_profile": applicant_analysis,
        }
        application.analysis_completed = True
        application.updated_at = utcnow()
        await db.flush()
        logger.info(
            "Application %s analyzed: %d/%d sources, overall=%d",
            application.id,
            metadata["successful_extractions"],
            len(extractions),
            overall,
        )
        return score


application_service = ApplicationService()
