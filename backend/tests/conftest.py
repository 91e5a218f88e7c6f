"""
DateMeDoc Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any datemedoc import so the
       settings singleton, the engine and the Gemini client are built for
       tests (SQLite, fake keys, a known JWT secret).

Fixtures (function-scoped):
    ├── mock_db_session: AsyncSession stand-in (no real DB needed)
    ├── auth_user:       AuthUser used by service tests and route overrides
    ├── make_token:      signs provider-style access tokens
    ├── sample_profile:  UserProfile row with interests, values, links
    ├── test_client:     HTTPX AsyncClient bound to the FastAPI app
    └── authed_client:   test_client with auth + DB dependencies overridden
"""

import os
import time
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

# Override settings for testing BEFORE any datemedoc imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"
os.environ["TWITTER_BEARER_TOKEN"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from datemedoc.auth import AuthUser, get_current_user
from datemedoc.config import settings
from datemedoc.database import get_db_session
from datemedoc.models.profile import UserProfile


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_doc(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = doc
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


def scalar_result(value):
    """An execute() result whose scalar_one_or_none() returns `value`."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def scalars_result(values):
    """An execute() result whose scalars().all() returns `values`."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(values)
    return result


@pytest.fixture
def auth_user():
    return AuthUser(id="auth-user-1", email="alex@example.com", name="Alex")


@pytest.fixture
def make_token():
    """Signs a token the way the identity provider does (HS256, audience)."""

    def _make(sub="auth-user-1", expires_in=3600, secret=None, **claims):
        payload = {
            "sub": sub,
            "aud": settings.jwt_audience,
            "exp": int(time.time()) + expires_in,
            "email": "alex@example.com",
            "user_metadata": {"full_name": "Alex Doe"},
        }
        payload.update(claims)
        return jwt.encode(
            payload,
            secret or settings.supabase_jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

    return _make


@pytest.fixture
def sample_profile():
    return UserProfile(
        id=uuid4(),
        auth_user_id="auth-user-1",
        email="alex@example.com",
        name="Alex",
        age=30,
        gender="female",
        location="Berlin",
        bio="Climber, reader and amateur baker who loves long walks by the river.",
        interests=["climbing", "reading", "baking"],
        values=["honesty", "curiosity"],
        looking_for=["male"],
        deal_breakers=["smoking"],
        lifestyle={"exercise_frequency": "often", "drinking": "socially", "smoking": "never"},
        preferred_age_range={"min": 25, "max": 40},
        twitter_handle="@alex",
        personal_website="https://alex.example.com",
        other_links=[],
        social_media_urls={},
        profile_completed=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from datemedoc.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def authed_client(auth_user, mock_db_session):
    """
    Client whose requests are authenticated as `auth_user` and whose DB
    session is `mock_db_session`. Overrides are removed afterwards.
    """
    from datemedoc.main import app

    async def _db():
        yield mock_db_session

    app.dependency_overrides[get_current_user] = lambda: auth_user
    app.dependency_overrides[get_db_session] = _db
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
