"""
DateMeDoc Backend — Auth Routes
=================================

Sign-in and token refresh happen client-side against the identity provider;
this API only verifies the bearer tokens it issues.

    GET  /api/auth/me       caller identity + profile (created on first call)
    POST /api/auth/logout   acknowledgement (tokens are stateless)
    POST /api/auth/login    501, after checking email and password are present
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.auth import AuthUser, get_current_user
from datemedoc.database import get_db_session
from datemedoc.exceptions import ValidationError
from datemedoc.middleware.request_id import request_id_var
from datemedoc.schemas.auth import AuthUserResponse, LoginRequest, MeResponse
from datemedoc.schemas.common import ErrorResponse, MessageResponse
from datemedoc.schemas.profile import ProfileResponse
from datemedoc.services.profile_service import profile_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.get(
    "/me",
    response_model=MeResponse,
    responses={401: {"model": ErrorResponse}},
)
async def me(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeResponse:
    profile = await profile_service.get_or_create(db, user)
    return MeResponse(
        user=AuthUserResponse(id=user.id, email=user.email, name=user.name),
        profile=ProfileResponse.model_validate(profile),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(user: AuthUser = Depends(get_current_user)) -> MessageResponse:
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/login",
    status_code=501,
    responses={400: {"model": ErrorResponse}, 501: {"model": ErrorResponse}},
)
async def login(body: LoginRequest) -> JSONResponse:
    if not body.email or not body.password:
        raise ValidationError("Email and password are required")
    return JSONResponse(
        status_code=501,
        content={
            "error": "not_implemented",
            "message": "Sign in with the identity provider client and send its access token as a Bearer token.",
            "request_id": request_id_var.get(""),
        },
    )
