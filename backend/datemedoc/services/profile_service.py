"""
DateMeDoc Backend — Profile Service
=====================================

What:  Everything under /api/users: profile lifecycle, onboarding, ad-hoc AI
       helpers, digital-footprint analysis, discovery matches and scoring
       an application against its doc owner.
How:   Composes ContentExtractor, the LLM service and MatchingService, each
       passed to the constructor (module singletons by default).
Who:   routes/users.py, routes/auth.py, routes/docs.py (owner resolution)
       and AnalysisWorker (footprint_analysis jobs).
When:  Per request, and per footprint_analysis job in the worker.

Footprint Analysis Flow (POST /api/users/analyze):
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐
    │  Links   │───▶│  Extractor   │───▶│  Gemini      │───▶│  Store rows  │
    │ (profile)│    │  (per link)  │    │  (corpus)    │    │  + score     │
    └──────────┘    └──────────────┘    └──────────────┘    └──────────────┘

    footprint score = min(100, round(successes * 20 + total_length / 1000))
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser
from datemedoc.database import utcnow
from datemedoc.exceptions import (
    ContentExtractionError,
    DatabaseError,
    DateMeDocError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from datemedoc.models.analysis import ContentAnalysis, MatchmakingScore
from datemedoc.models.application import Application
from datemedoc.models.date_me_doc import DateMeDoc
from datemedoc.models.profile import UserProfile
from datemedoc.schemas.profile import OnboardingRequest, ProfileCreate, ProfileUpdate
from datemedoc.services import scoring
from datemedoc.services.content_extractor import ContentExtractor, content_extractor
from datemedoc.services.gemini_service import gemini_service
from datemedoc.services.job_queue import FOOTPRINT_ANALYSIS, enqueue_job
from datemedoc.services.llm_base import LLMService
from datemedoc.services.matching_service import MatchingService, matching_service
from datemedoc.services.scoring import MatchProfile

logger = logging.getLogger(__name__)

DEFAULT_MATCH_LIMIT = 10


def footprint_score(successes: int, total_length: int) -> int:
    return min(100, round(successes * 20 + total_length / 1000))


def profile_links(profile: UserProfile) -> List[Dict[str, Any]]:
    """
    Links that describe a person online, deduplicated by URL:
    twitter handle, personal website, other links and onboarding URLs.
    """
    links: List[Dict[str, Any]] = []
    seen = set()

    def add(link_type: str, url: Optional[str], handle: Optional[str] = None) -> None:
        if not url or url in seen:
            return
        seen.add(url)
        links.append({"type": link_type, "url": url, "handle": handle})

    if profile.twitter_handle:
        handle = profile.twitter_handle.lstrip("@")
        add("twitter", f"https://twitter.com/{handle}", handle)
    add("website", profile.personal_website)
    for link in profile.other_links or []:
        add(link.get("type") or "other", link.get("url"), link.get("handle"))
    for key, url in (profile.social_media_urls or {}).items():
        add(key if key in ("twitter", "instagram", "linkedin", "spotify", "blog") else "website", url)
    return links


class ProfileService:
    """
    Stateless apart from its collaborators, which tests replace with mocks.

    Error Handling Strategy:
        Our own exceptions propagate untouched. Anything else raised while
        talking to the database becomes a DatabaseError with a generic
        message; the original error is logged only.
    """

    def __init__(
        self,
        llm: Optional[LLMService] = None,
        extractor: Optional[ContentExtractor] = None,
        matcher: Optional[MatchingService] = None,
    ):
        self.llm = llm or gemini_service
        self.extractor = extractor or content_extractor
        self.matcher = matcher or matching_service

    # ── Lookup ────────────────────────────────────────────────────────────

    async def get_by_auth_id(self, db: AsyncSession, auth_user_id: str) -> Optional[UserProfile]:
        result = await db.execute(
            select(UserProfile).where(UserProfile.auth_user_id == auth_user_id)
        )
        return result.scalar_one_or_none()

    async def require_profile(self, db: AsyncSession, user: AuthUser) -> UserProfile:
        profile = await self.get_by_auth_id(db, user.id)
        if profile is None:
            raise NotFoundError(resource="profile")
        return profile

    async def get_or_create(self, db: AsyncSession, user: AuthUser) -> UserProfile:
        """
        Resolves the caller's profile, creating a bare row from the token
        claims on first access.
        """
        try:
            profile = await self.get_by_auth_id(db, user.id)
            if profile is not None:
                return profile

            profile = UserProfile(
                auth_user_id=user.id,
                email=user.email,
                name=user.name or (user.email.split("@")[0] if user.email else None),
            )
            db.add(profile)
            await db.flush()
            logger.info("Created profile %s for auth user %s", profile.id, user.id)
            return profile
        except DateMeDocError:
            raise
        except Exception as e:
            logger.error("Database error resolving profile for %s: %s", user.id, str(e))
            raise DatabaseError(
                message="Could not load your profile. Please try again.",
                context={"error_type": type(e).__name__},
            )

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def create_profile(
        self, db: AsyncSession, user: AuthUser, data: ProfileCreate
    ) -> UserProfile:
        try:
            if await self.get_by_auth_id(db, user.id) is not None:
                raise ValidationError("Profile already exists")

            profile = UserProfile(
                auth_user_id=user.id,
                email=data.email or user.email,
                name=data.name,
                age=data.age,
                location=data.location,
                gender=data.gender,
                looking_for=data.looking_for,
                bio=data.bio,
                interests=data.interests,
                hobbies=data.hobbies,
                values=data.values,
                lifestyle=data.lifestyle,
                preferences=data.preferences,
            )
            db.add(profile)
            await db.flush()
            logger.info("Profile %s created", profile.id)
            return profile
        except DateMeDocError:
            raise
        except Exception as e:
            logger.error("Database error creating profile: %s", str(e))
            raise DatabaseError(
                message="Could not create your profile. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_profile(
        self, db: AsyncSession, user: AuthUser, data: ProfileUpdate
    ) -> UserProfile:
        try:
            profile = await self.require_profile(db, user)
            changes = data.changes()
            for key, value in changes.items():
                setattr(profile, key, value)
            profile.updated_at = utcnow()
            await db.flush()
            logger.info("Profile %s updated (%s)", profile.id, ", ".join(sorted(changes)))
            return profile
        except DateMeDocError:
            raise
        except Exception as e:
            logger.error("Database error updating profile: %s", str(e))
            raise DatabaseError(
                message="Could not update your profile. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def complete_onboarding(
        self, db: AsyncSession, user: AuthUser, data: OnboardingRequest
    ) -> UserProfile:
        """
        Upserts the caller's profile from the onboarding form, marks it
        completed, and queues a footprint analysis when URLs were given.
        """
        try:
            profile = await self.get_by_auth_id(db, user.id)
            if profile is None:
                profile = UserProfile(auth_user_id=user.id, email=user.email)
                db.add(profile)

            profile.name = data.full_name
            profile.age = data.age
            profile.gender = data.gender
            profile.location = data.location
            profile.bio = data.bio
            profile.interests = data.interests
            profile.looking_for = data.looking_for
            profile.relationship_type = data.relationship_type
            profile.personality_type = data.personality_type
            profile.hobbies = data.hobbies
            profile.lifestyle = data.lifestyle
            profile.education = data.education
            profile.occupation = data.occupation
            profile.social_media_urls = {k: v for k, v in data.social_media_urls.items() if v}
            profile.preferred_age_range = (
                data.preferred_age_range.model_dump() if data.preferred_age_range else None
            )
            profile.deal_breakers = data.deal_breakers
            profile.values = data.values
            profile.profile_completed = True
            profile.updated_at = utcnow()
            await db.flush()

            if data.submitted_urls():
                await enqueue_job(db, FOOTPRINT_ANALYSIS, profile.id, "profile")

            logger.info("Onboarding completed for profile %s", profile.id)
            return profile
        except DateMeDocError:
            raise
        except Exception as e:
            logger.error("Database error during onboarding: %s", str(e))
            raise DatabaseError(
                message="Could not save your onboarding answers. Please try again.",
                context={"error_type": type(e).__name__},
            )

    # ── Ad-hoc AI helpers ─────────────────────────────────────────────────

    async def extract_content(self, url: str, link_type: Optional[str] = None) -> Dict[str, Any]:
        result = await self.extractor.extract_from_url(url, link_type)
        if not result.success:
            raise ContentExtractionError(
                message=result.error or "Content extraction failed", url=url
            )
        return result.data

    async def analyze_profile_body(self, corpus: Dict[str, Any]) -> Dict[str, Any]:
        return await self.llm.analyze_profile(corpus, {"source": "profile_form"})

    async def calculate_compatibility(
        self,
        profile1: Dict[str, Any],
        profile2: Dict[str, Any],
        preferences: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self.llm.calculate_compatibility(profile1, profile2, preferences)

    # ── Digital footprint ─────────────────────────────────────────────────

    async def run_footprint_analysis(
        self, db: AsyncSession, profile: UserProfile
    ) -> Dict[str, Any]:
        """
        Extracts every profile link, analyzes the combined corpus, stores one
        content_analysis row per successful source and stamps the profile.

        Raises:
            ValidationError: the profile has no links (→ 400)
            ContentExtractionError: no link produced any content (→ 400)
            LLMServiceError / CircuitBreakerOpenError: Gemini failed (→ 503)
        """
        links = profile_links(profile)
        if not links:
            raise ValidationError(
                "No social media or website links found. Please add at least one link to your profile."
            )

        extractions = await self.extractor.extract_many(links)
        corpus, metadata = self.extractor.aggregate(extractions)
        if not corpus:
            raise ContentExtractionError("Could not extract content from any of your links")

        analysis = await self.llm.analyze_profile(corpus, metadata)

        for item in extractions:
            if not item.result.success:
                continue
            row = ContentAnalysis(
                user_id=profile.id,
                source_type=item.type,
                source_url=item.url,
                extracted_content=item.result.data,
                content_metadata={"extracted_at": item.result.data.get("extracted_at")},
            )
            row.apply_profile(analysis)
            db.add(row)

        score = footprint_score(metadata["successful_extractions"], metadata["total_length"])
        profile.digital_footprint_score = score
        profile.last_analysis_at = utcnow()
        await db.flush()
        logger.info(
            "Footprint analysis for profile %s: %d/%d sources, score=%d",
            profile.id,
            metadata["successful_extractions"],
            len(links),
            score,
        )
        return {"analysis": analysis, "metadata": metadata, "footprint_score": score}

    async def analyze_footprint(self, db: AsyncSession, user: AuthUser) -> Dict[str, Any]:
        profile = await self.require_profile(db, user)
        return await self.run_footprint_analysis(db, profile)

    async def list_analyses(self, db: AsyncSession, user: AuthUser) -> List[ContentAnalysis]:
        try:
            profile = await self.get_by_auth_id(db, user.id)
            if profile is None:
                return []
            result = await db.execute(
                select(ContentAnalysis)
                .where(ContentAnalysis.user_id == profile.id)
                .order_by(ContentAnalysis.created_at.desc())
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing analyses: %s", str(e))
            raise DatabaseError(
                message="Could not load your analyses. Please try again.",
                context={"error_type": type(e).__name__},
            )

    # ── Discovery ─────────────────────────────────────────────────────────

    async def find_matches(
        self, db: AsyncSession, user: AuthUser, limit: int = DEFAULT_MATCH_LIMIT
    ) -> List[Tuple[UserProfile, scoring.ScoreBreakdown]]:
        """
        Other completed profiles inside the caller's preferred age range
        whose `looking_for` includes the caller's gender, best first.
        """
        me = await self.require_profile(db, user)
        query = select(UserProfile).where(
            UserProfile.id != me.id,
            UserProfile.profile_completed.is_(True),
        )
        age_range = me.preferred_age_range or {}
        if age_range.get("min") is not None:
            query = query.where(UserProfile.age >= age_range["min"])
        if age_range.get("max") is not None:
            query = query.where(UserProfile.age <= age_range["max"])

        try:
            result = await db.execute(query)
            candidates = list(result.scalars().all())
        except Exception as e:
            logger.error("Database error loading match candidates: %s", str(e))
            raise DatabaseError(
                message="Could not load matches. Please try again.",
                context={"error_type": type(e).__name__},
            )

        mine = MatchProfile.from_model(me)
        scored = []
        for candidate in candidates:
            if me.gender and me.gender not in (candidate.looking_for or []):
                continue
            scored.append((candidate, scoring.discovery_score(mine, MatchProfile.from_model(candidate))))
        scored.sort(key=lambda pair: pair[1].score, reverse=True)
        return scored[:limit]

    # ── Application scoring ───────────────────────────────────────────────

    async def match_application(
        self,
        db: AsyncSession,
        user: AuthUser,
        application_id: uuid.UUID,
        include_url_matching: bool = False,
    ) -> Tuple[Dict[str, Any], uuid.UUID]:
        """
        Scores an application against its doc's owner (the caller), stores a
        matchmaking_scores row and updates the application.
        """
        owner = await self.require_profile(db, user)

        result = await db.execute(select(Application).where(Application.id == application_id))
        application = result.scalar_one_or_none()
        if application is None:
            raise NotFoundError(resource="application", resource_id=str(application_id))

        result = await db.execute(select(DateMeDoc).where(DateMeDoc.id == application.date_me_doc_id))
        doc = result.scalar_one_or_none()
        if doc is None or doc.user_id != owner.id:
            raise PermissionDeniedError("Only the doc owner can score this application")

        applicant_model: Optional[UserProfile] = None
        if application.applicant_user_id:
            result = await db.execute(
                select(UserProfile).where(UserProfile.id == application.applicant_user_id)
            )
            applicant_model = result.scalar_one_or_none()

        applicant = (
            MatchProfile.from_model(applicant_model)
            if applicant_model is not None
            else MatchProfile.from_mapping(application.answers or {})
        )
        match = await self.matcher.match_profiles(
            MatchProfile.from_model(owner),
            applicant,
            urls1=[link["url"] for link in profile_links(owner)],
            urls2=application.link_urls(),
            include_url_matching=include_url_matching,
        )

        score = MatchmakingScore(
            application_id=application.id,
            doc_owner_id=owner.id,
            applicant_id=application.applicant_user_id,
            text_match_score=match.text_match_score,
            url_context_score=match.url_context_score,
            overall_score=match.overall_score,
            compatibility_breakdown=match.breakdown,
            recommendation=match.recommendation,
        )
        db.add(score)
        application.match_score = match.overall_score
        application.compatibility_data = match.to_dict()
        await db.flush()
        logger.info(
            "Application %s scored %d for owner %s", application.id, match.overall_score, owner.id
        )
        return match.to_dict(), score.id


profile_service = ProfileService()
