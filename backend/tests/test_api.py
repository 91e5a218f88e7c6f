"""
DateMeDoc Backend — API Endpoint Tests
========================================

What:  HTTP-level behaviour through the real FastAPI app: status codes,
       the error envelope, auth enforcement and middleware headers.
How:   ASGITransport client; services are patched where a route would
       otherwise reach the database or Gemini.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from datemedoc.config import settings
from datemedoc.exceptions import CircuitBreakerOpenError, NotFoundError, ValidationError
from datemedoc.middleware.rate_limit import RateLimitMiddleware
from datemedoc.models.application import Application
from datemedoc.models.date_me_doc import DateMeDoc


def _doc(owner_id):
    now = datetime.now(timezone.utc)
    return DateMeDoc(
        id=uuid4(), user_id=owner_id, slug="alex-doc", title="Alex's doc",
        description="", about_me="", header_content={}, interests=[], deal_breakers=[],
        form_questions=[], social_links={}, preferences={}, settings={},
        is_active=True, is_public=True, view_count=0, application_count=0,
        created_at=now, updated_at=now,
    )


class TestHealth:
    @pytest.mark.asyncio
    async def test_root_lists_endpoints(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "DateMeDoc API"
        assert body["endpoints"]["docs"] == "/api/docs"

    @pytest.mark.asyncio
    async def test_health_reports_components(self, test_client):
        with patch("datemedoc.routes.health.gemini_service.health_check", AsyncMock(return_value=False)):
            response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "connected"
        assert body["gemini"] == "unavailable"
        assert body["status"] == "degraded"
        assert "X-Request-ID" in response.headers


class TestErrorEnvelope:
    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, test_client):
        response = await test_client.get("/api/docs")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["message"] == "No token provided"
        assert body["request_id"] == response.headers["X-Request-ID"]
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, test_client):
        response = await test_client.get(
            "/api/users/profile", headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_request_validation_is_400(self, authed_client):
        response = await authed_client.post("/api/docs", json={"title": "x"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["errors"][0]["field"] == "title"

    @pytest.mark.asyncio
    async def test_client_request_id_is_echoed(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_unsafe_request_id_is_replaced(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "a b<script>"})
        assert response.headers["X-Request-ID"] != "a b<script>"
        assert len(response.headers["X-Request-ID"]) == 8


class TestAuthRoutes:
    @pytest.mark.asyncio
    async def test_login_requires_credentials(self, test_client):
        response = await test_client.post("/api/auth/login", json={"email": "a@b.co"})
        assert response.status_code == 400
        assert response.json()["message"] == "Email and password are required"

    @pytest.mark.asyncio
    async def test_login_not_implemented(self, test_client):
        response = await test_client.post(
            "/api/auth/login", json={"email": "a@b.co", "password": "pw"}
        )
        assert response.status_code == 501
        assert response.json()["error"] == "not_implemented"

    @pytest.mark.asyncio
    async def test_logout(self, authed_client):
        response = await authed_client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}


class TestDocRoutes:
    @pytest.mark.asyncio
    async def test_create_doc(self, authed_client, sample_profile):
        doc = _doc(sample_profile.id)
        with patch("datemedoc.routes.docs.date_me_doc_service") as service:
            service.create_doc = AsyncMock(return_value=doc)
            response = await authed_client.post("/api/docs", json={"title": "Alex's doc"})

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Date-me-doc created successfully"
        assert body["doc"]["slug"] == "alex-doc"
        assert body["doc"]["user_id"] == str(sample_profile.id)

    @pytest.mark.asyncio
    async def test_slug_taken_is_400(self, authed_client):
        with patch("datemedoc.routes.docs.date_me_doc_service") as service:
            service.create_doc = AsyncMock(
                side_effect=ValidationError("Slug already taken. Please choose another.", field="slug")
            )
            response = await authed_client.post("/api/docs", json={"title": "Alex's doc"})

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "slug"}

    @pytest.mark.asyncio
    async def test_public_view_hides_owner_id(self, test_client, sample_profile):
        doc = _doc(sample_profile.id)
        with patch("datemedoc.routes.docs.date_me_doc_service") as service:
            service.get_public_doc = AsyncMock(return_value=(doc, sample_profile))
            response = await test_client.get("/api/docs/alex-doc")

        assert response.status_code == 200
        public = response.json()["doc"]
        assert "user_id" not in public
        assert public["owner"]["name"] == "Alex"

    @pytest.mark.asyncio
    async def test_public_view_missing(self, test_client):
        with patch("datemedoc.routes.docs.date_me_doc_service") as service:
            service.get_public_doc = AsyncMock(
                side_effect=NotFoundError(resource="date-me-doc", resource_id="nope")
            )
            response = await test_client.get("/api/docs/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_null_title_is_400(self, authed_client):
        response = await authed_client.patch(f"/api/docs/{uuid4()}", json={"title": None})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["errors"][0]["field"] == "title"

    @pytest.mark.asyncio
    async def test_invalid_status_value_is_400(self, authed_client):
        response = await authed_client.patch(
            f"/api/docs/{uuid4()}/applications/{uuid4()}/status", json={"status": "ghosted"}
        )
        assert response.status_code == 400


class TestApplicationRoutes:
    @pytest.mark.asyncio
    async def test_apply_anonymously(self, test_client):
        application = Application(
            id=uuid4(), status="pending", created_at=datetime.now(timezone.utc)
        )
        with patch("datemedoc.routes.applications.application_service") as service:
            service.submit = AsyncMock(return_value=application)
            response = await test_client.post(
                "/api/applications/alex-doc/apply",
                json={
                    "applicant_name": "Sam Lee",
                    "applicant_email": "sam@example.com",
                    "answers": {},
                    "submitted_links": [{"type": "website", "url": "https://sam.example.com"}],
                },
            )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Application submitted successfully"
        assert body["application"]["status"] == "pending"
        assert service.submit.await_args.args[3] is None

    @pytest.mark.asyncio
    async def test_apply_requires_a_link(self, test_client):
        response = await test_client.post(
            "/api/applications/alex-doc/apply",
            json={"applicant_name": "Sam", "applicant_email": "sam@example.com", "submitted_links": []},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_analyze_match_circuit_open_is_503(self, test_client):
        with patch("datemedoc.routes.applications.application_service") as service:
            service.analyze_match = AsyncMock(side_effect=CircuitBreakerOpenError(recovery_time=30))
            response = await test_client.post(
                "/api/applications/analyze-match",
                json={"docOwnerProfile": {"bio": "a"}, "applicantProfile": {"bio": "b"}},
            )

        assert response.status_code == 503
        assert response.json()["error"] == "service_unavailable"
        assert response.headers["Retry-After"] == "30"

    @pytest.mark.asyncio
    async def test_ai_select_default_limit(self, authed_client):
        with patch("datemedoc.routes.applications.form_service") as service:
            service.ai_select = AsyncMock(return_value=[])
            response = await authed_client.post("/api/applications/ai-select")

        assert response.status_code == 200
        assert response.json()["top_candidates"] == []
        assert service.ai_select.await_args.kwargs["limit"] == 3


class TestRateLimit:
    """Exercised on a bare app so the shared application's counters stay untouched."""

    @pytest.mark.asyncio
    async def test_limits_api_paths_only(self):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware)

        @app.get("/api/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"ok": True}

        with patch.object(settings, "rate_limit_requests", 2):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                codes = [(await client.get("/api/ping")).status_code for _ in range(3)]
                limited = await client.get("/api/ping")
                health = await client.get("/health")

        assert codes == [200, 200, 429]
        assert limited.json()["error"] == "rate_limit_exceeded"
        assert int(limited.headers["Retry-After"]) > 0
        assert health.status_code == 200
