"""
DateMeDoc Backend — Auth Schemas
==================================
"""

from typing import Optional

from pydantic import BaseModel

from datemedoc.schemas.profile import ProfileResponse


class LoginRequest(BaseModel):
    # Presence is checked in the route so a missing field is a plain 400.
    email: Optional[str] = None
    password: Optional[str] = None


class AuthUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


class MeResponse(BaseModel):
    user: AuthUserResponse
    profile: Optional[ProfileResponse] = None
