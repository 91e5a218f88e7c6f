"""
DateMeDoc Backend — Health & Root Routes
==========================================

What:  GET /health for liveness checks and GET / as a small API index.

Status levels:
    healthy    database reachable and Gemini available
    degraded   database reachable, Gemini unavailable or circuit open
    unhealthy  database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from datemedoc import __version__
from datemedoc.database import engine
from datemedoc.schemas.common import HealthResponse, RootResponse
from datemedoc.services.gemini_service import CircuitBreaker, gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    gemini_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if gemini_service.circuit_breaker.state == CircuitBreaker.OPEN:
        gemini_status = "circuit_open"
    elif not await gemini_service.health_check():
        gemini_status = "unavailable"
    if gemini_status != "available" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )


@router.get("/", response_model=RootResponse, summary="API index")
async def root() -> RootResponse:
    return RootResponse(
        name="DateMeDoc API",
        version=__version__,
        description="Date-me-docs, applications and AI-assisted matchmaking",
        endpoints={
            "health": "/health",
            "auth": "/api/auth",
            "docs": "/api/docs",
            "applications": "/api/applications",
            "users": "/api/users",
            "forms": "/api/forms",
        },
    )
