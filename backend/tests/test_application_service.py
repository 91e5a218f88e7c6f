"""
DateMeDoc Backend — Application Service Unit Tests
====================================================

What we test:
    ✅ Submit: unknown doc, inactive doc, missing required answer
    ✅ Submit: application stored, counter bumped, extraction job queued
    ✅ Status lookup needs a signed-in applicant or an email
    ✅ Background analysis with and without an owner analysis
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from conftest import scalar_result, scalars_result
from datemedoc.exceptions import NotFoundError, ValidationError
from datemedoc.models.analysis import AnalysisJob, ContentAnalysis, MatchmakingScore
from datemedoc.models.application import Application
from datemedoc.models.date_me_doc import DateMeDoc
from datemedoc.schemas.application import AnalyzeMatchRequest, ApplicationSubmit
from datemedoc.services.application_service import ApplicationService
from datemedoc.services.content_extractor import ContentExtractor, ExtractionResult, LinkExtraction
from datemedoc.services.matching_service import MatchResult

QUESTION_ID = "4b0a3c1e-7a52-4c53-9a3f-2f1f1b0f0c11"


def _submission(**overrides):
    data = {
        "applicant_name": "Sam Lee",
        "applicant_email": "sam@example.com",
        "answers": {QUESTION_ID: "Because you bake."},
        "submitted_links": [{"type": "website", "url": "https://sam.example.com"}],
    }
    data.update(overrides)
    return ApplicationSubmit(**data)


def _doc(**fields):
    values = dict(
        id=uuid4(), user_id=uuid4(), slug="alex-doc", title="Alex", is_active=True,
        application_count=2, preferences={"smoker": False},
        form_questions=[{"id": QUESTION_ID, "question": "Why me?", "type": "text", "required": True}],
    )
    values.update(fields)
    return DateMeDoc(**values)


class TestSubmit:
    def setup_method(self):
        self.profiles = MagicMock()
        self.profiles.get_by_auth_id = AsyncMock(return_value=None)
        self.service = ApplicationService(
            llm=MagicMock(), extractor=MagicMock(), matcher=MagicMock(), profiles=self.profiles
        )

    @pytest.mark.asyncio
    async def test_unknown_doc(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(None)
        with pytest.raises(NotFoundError):
            await self.service.submit(mock_db_session, "missing", _submission())

    @pytest.mark.asyncio
    async def test_inactive_doc(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(_doc(is_active=False))
        with pytest.raises(ValidationError):
            await self.service.submit(mock_db_session, "alex-doc", _submission())

    @pytest.mark.asyncio
    async def test_required_answer_missing(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(_doc())

        with pytest.raises(ValidationError) as exc_info:
            await self.service.submit(
                mock_db_session, "alex-doc", _submission(answers={QUESTION_ID: "   "})
            )
        assert "Why me?" in exc_info.value.message
        assert exc_info.value.context["question_id"] == QUESTION_ID

    @pytest.mark.asyncio
    async def test_stores_application_and_queues_job(self, mock_db_session):
        doc = _doc()
        mock_db_session.execute.return_value = scalar_result(doc)

        application = await self.service.submit(mock_db_session, "alex-doc", _submission())

        assert application.status == "pending"
        assert application.date_me_doc_id == doc.id
        assert application.applicant_user_id is None
        assert application.social_links == [
            {"type": "website", "url": "https://sam.example.com/", "handle": None}
        ]
        assert doc.application_count == 3
        added = [c.args[0] for c in mock_db_session.add.call_args_list]
        job = next(obj for obj in added if isinstance(obj, AnalysisJob))
        assert job.job_type == "content_extraction"
        assert job.entity_type == "application"
        assert job.priority == 5

    @pytest.mark.asyncio
    async def test_signed_in_applicant_is_linked(self, mock_db_session, auth_user, sample_profile):
        self.profiles.get_by_auth_id = AsyncMock(return_value=sample_profile)
        mock_db_session.execute.return_value = scalar_result(_doc())

        application = await self.service.submit(
            mock_db_session, "alex-doc", _submission(), user=auth_user
        )
        assert application.applicant_user_id == sample_profile.id


class TestStatus:
    def setup_method(self):
        self.profiles = MagicMock()
        self.service = ApplicationService(
            llm=MagicMock(), extractor=MagicMock(), matcher=MagicMock(), profiles=self.profiles
        )

    @pytest.mark.asyncio
    async def test_requires_email_when_anonymous(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.get_status(mock_db_session, uuid4())

    @pytest.mark.asyncio
    async def test_wrong_email_is_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(None)
        with pytest.raises(NotFoundError):
            await self.service.get_status(mock_db_session, uuid4(), email="other@example.com")

    @pytest.mark.asyncio
    async def test_returns_scores(self, mock_db_session):
        application = Application(
            id=uuid4(), status="reviewed", match_score=81.0, analysis_completed=True,
            created_at=datetime.now(timezone.utc),
        )
        score = MatchmakingScore(
            overall_score=81, recommendation="strong_match", green_flags=["kind"], date_ideas=[]
        )
        mock_db_session.execute = AsyncMock(side_effect=[
            scalar_result(application), scalars_result([score]),
        ])

        detail = await self.service.get_status(
            mock_db_session, application.id, email="sam@example.com"
        )

        assert detail.status == "reviewed"
        assert detail.matchmaking_scores[0].overall_score == 81
        assert detail.matchmaking_scores[0].green_flags == ["kind"]


class TestAnalyzeMatch:
    @pytest.mark.asyncio
    async def test_combines_llm_answers(self):
        llm = MagicMock()
        llm.calculate_compatibility = AsyncMock(return_value={
            "overall_compatibility_score": 72,
            "compatibility_breakdown": {"values_alignment": 80},
            "recommendation": "good_potential",
        })
        llm.analyze_application_match = AsyncMock(return_value={
            "preference_match_score": 65, "standout_answers": [], "summary": "Solid."
        })
        service = ApplicationService(llm=llm, extractor=MagicMock(), matcher=MagicMock(),
                                     profiles=MagicMock())

        result = await service.analyze_match(AnalyzeMatchRequest(
            docOwnerProfile={"bio": "a"}, applicantProfile={"bio": "b"},
            applicationAnswers={"q": "yes"},
        ))

        assert result.compatibility_score == 72
        assert result.preference_match_score == 65
        assert result.recommendation == "good_potential"
        assert result.summary == "Solid."

    def test_request_requires_both_profiles(self):
        with pytest.raises(ValueError):
            AnalyzeMatchRequest(doc_owner_profile={"bio": "a"})


class TestProcessApplication:
    def setup_method(self):
        self.llm = MagicMock()
        self.llm.analyze_profile = AsyncMock(return_value={"interests": ["bread"], "values": []})
        self.llm.calculate_compatibility = AsyncMock(return_value={
            "overall_compatibility_score": 80,
            "compatibility_breakdown": {"humor_compatibility": 90},
            "recommendation": "strong_match",
            "green_flags": ["curious"],
            "red_flags": [],
            "date_ideas": ["bakery crawl"],
        })
        self.llm.analyze_application_match = AsyncMock(return_value={"preference_match_score": 50})
        self.extractor = MagicMock()
        self.extractor.aggregate = ContentExtractor.aggregate
        self.extractor.extract_many = AsyncMock(return_value=[
            LinkExtraction("website", "https://sam.example.com", None,
                           ExtractionResult(True, "website", data={"main_content": "I bake bread."})),
        ])
        self.matcher = MagicMock()
        self.matcher.match_profiles = AsyncMock(return_value=MatchResult(
            text_match_score=40, url_context_score=0, overall_score=40,
            recommendation="moderate_match", breakdown={"text_based": {"score": 40}},
        ))
        self.service = ApplicationService(
            llm=self.llm, extractor=self.extractor, matcher=self.matcher, profiles=MagicMock()
        )

    def _rows(self, sample_profile, owner_analysis):
        doc = _doc(user_id=sample_profile.id)
        application = Application(
            id=uuid4(), date_me_doc_id=doc.id, answers={QUESTION_ID: "Bread"},
            social_links=[{"type": "website", "url": "https://sam.example.com"}],
        )
        analysis_row = ContentAnalysis(psychological_profile=owner_analysis) if owner_analysis else None
        return doc, application, [
            scalar_result(application),
            scalar_result(doc),
            scalar_result(sample_profile),
            scalar_result(analysis_row),
        ]

    @pytest.mark.asyncio
    async def test_weighted_score_with_owner_analysis(self, mock_db_session, sample_profile):
        doc, application, results = self._rows(sample_profile, {"interests": ["climbing"]})
        mock_db_session.execute = AsyncMock(side_effect=results)

        score = await self.service.process_application(mock_db_session, application.id)

        # round(80 × 0.7 + 50 × 0.3)
        assert score.overall_score == 71
        assert score.url_context_score == 80
        assert score.text_match_score == 40
        assert score.recommendation == "strong_match"
        assert score.date_ideas == ["bakery crawl"]
        assert application.analysis_completed is True
        assert application.match_score == 71
        assert application.compatibility_data["applicant_profile"] == {"interests": ["bread"], "values": []}
        rows = [c.args[0] for c in mock_db_session.add.call_args_list if isinstance(c.args[0], ContentAnalysis)]
        assert rows[0].application_id == application.id
        assert rows[0].interests == ["bread"]

    @pytest.mark.asyncio
    async def test_text_score_without_owner_analysis(self, mock_db_session, sample_profile):
        doc, application, results = self._rows(sample_profile, None)
        mock_db_session.execute = AsyncMock(side_effect=results)

        score = await self.service.process_application(mock_db_session, application.id)

        assert score.overall_score == 40
        assert score.url_context_score is None
        assert score.recommendation == "moderate_match"
        self.llm.calculate_compatibility.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_application(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(None)
        with pytest.raises(NotFoundError):
            await self.service.process_application(mock_db_session, uuid4())
