"""
DateMeDoc Backend — Dating Form Service Unit Tests
====================================================

What we test:
    ✅ Create returns the response shape with an application count
    ✅ Forms owned by someone else look missing (404)
    ✅ AI selection scores new applications, persists and ranks them
    ✅ Inbox status changes are validated and owner-scoped
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from conftest import scalar_result
from datemedoc.exceptions import NotFoundError, ValidationError
from datemedoc.models.form import FormApplication
from datemedoc.schemas.form import FormCreate
from datemedoc.services.form_service import FormService, application_item


def _rows(*rows):
    result = MagicMock()
    result.all.return_value = list(rows)
    return result


def _application(owner_id, **data):
    return FormApplication(
        id=uuid4(),
        form_id=uuid4(),
        form_owner_id=owner_id,
        applicant_data=data,
        status="new",
        match_factors=[],
        created_at=datetime.now(timezone.utc),
    )


class TestApplicationItem:
    def test_labels_are_case_insensitive(self):
        app = _application(uuid4(), name="Sam", EMAIL="sam@example.com", location="Oslo")
        item = application_item(app, "Summer form")

        assert item.applicant_name == "Sam"
        assert item.applicant_email == "sam@example.com"
        assert item.based_in == "Oslo"
        assert item.form_name == "Summer form"

    def test_full_name_fallback(self):
        item = application_item(_application(uuid4(), full_name="Sam Lee"), None)
        assert item.applicant_name == "Sam Lee"


class TestForms:
    def setup_method(self):
        self.profiles = MagicMock()
        self.service = FormService(profiles=self.profiles)

    @pytest.mark.asyncio
    async def test_create_form(self, mock_db_session, auth_user, sample_profile):
        self.profiles.get_or_create = AsyncMock(return_value=sample_profile)
        mock_db_session.add.side_effect = lambda obj: setattr(obj, "id", uuid4())

        response = await self.service.create_form(
            mock_db_session, auth_user, FormCreate(title="Summer dates", fields=[{"label": "Name"}])
        )

        assert response.title == "Summer dates"
        assert response.owner_id == sample_profile.id
        assert response.status == "draft"
        assert response.applications_count == 0

    @pytest.mark.asyncio
    async def test_foreign_form_is_not_found(self, mock_db_session, auth_user, sample_profile):
        self.profiles.get_by_auth_id = AsyncMock(return_value=sample_profile)
        mock_db_session.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            await self.service.get_form(mock_db_session, auth_user, uuid4())

    @pytest.mark.asyncio
    async def test_without_profile_is_not_found(self, mock_db_session, auth_user):
        self.profiles.get_by_auth_id = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await self.service.delete_form(mock_db_session, auth_user, uuid4())
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_forms_without_profile(self, mock_db_session, auth_user):
        self.profiles.get_by_auth_id = AsyncMock(return_value=None)
        assert await self.service.list_forms(mock_db_session, auth_user) == []


class TestAISelect:
    def setup_method(self):
        self.profiles = MagicMock()
        self.service = FormService(profiles=self.profiles)

    @pytest.mark.asyncio
    async def test_ranks_and_persists(self, mock_db_session, auth_user, sample_profile):
        self.profiles.require_profile = AsyncMock(return_value=sample_profile)
        good = _application(
            sample_profile.id, Name="Sam", Interests=["climbing", "reading"], Location="Berlin", Age=31
        )
        okay = _application(sample_profile.id, Name="Kim", Location="Munich")
        weak = _application(sample_profile.id, Name="Lou")
        mock_db_session.execute.return_value = _rows((weak, "Form"), (okay, "Form"), (good, "Form"))

        top = await self.service.ai_select(mock_db_session, auth_user, limit=2)

        assert [item.applicant_name for item in top] == ["Sam", "Kim"]
        # interests 2/3 × 40 + location 15 + age in range 10
        assert good.ai_score == 52
        assert okay.ai_score == 5
        assert weak.ai_score == 0
        assert good.match_factors[0]["name"] == "Interests"
        mock_db_session.flush.assert_awaited()

    @pytest.mark.asyncio
    async def test_requires_profile(self, mock_db_session, auth_user):
        self.profiles.require_profile = AsyncMock(side_effect=NotFoundError(resource="profile"))
        with pytest.raises(NotFoundError):
            await self.service.ai_select(mock_db_session, auth_user)


class TestStatusUpdate:
    def setup_method(self):
        self.profiles = MagicMock()
        self.service = FormService(profiles=self.profiles)

    @pytest.mark.asyncio
    async def test_invalid_status(self, mock_db_session, auth_user):
        with pytest.raises(ValidationError):
            await self.service.update_application_status(mock_db_session, auth_user, uuid4(), "pending")

    @pytest.mark.asyncio
    async def test_not_owned(self, mock_db_session, auth_user, sample_profile):
        self.profiles.get_by_auth_id = AsyncMock(return_value=sample_profile)
        result = MagicMock()
        result.one_or_none.return_value = None
        mock_db_session.execute.return_value = result

        with pytest.raises(NotFoundError):
            await self.service.update_application_status(
                mock_db_session, auth_user, uuid4(), "shortlisted"
            )

    @pytest.mark.asyncio
    async def test_updates_status(self, mock_db_session, auth_user, sample_profile):
        self.profiles.get_by_auth_id = AsyncMock(return_value=sample_profile)
        app = _application(sample_profile.id, Name="Sam")
        result = MagicMock()
        result.one_or_none.return_value = (app, "Summer form")
        mock_db_session.execute.return_value = result

        item = await self.service.update_application_status(
            mock_db_session, auth_user, app.id, "archived"
        )
        assert item.status == "archived"
        assert item.form_name == "Summer form"
