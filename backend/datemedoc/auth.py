"""
DateMeDoc Backend — Authentication Dependencies
=================================================

What:  FastAPI dependencies that turn an `Authorization: Bearer <jwt>` header
       into an AuthUser.
How:   The identity provider signs access tokens with a shared HS256 secret;
       tokens are verified locally with PyJWT (signature, expiry, audience).
       Sign-in itself happens client-side at the provider.
Who:   Route handlers that need a caller identity.

    get_current_user   → AuthUser, or AuthenticationError (401)
    get_optional_user  → AuthUser or None (anonymous application submits)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from datemedoc.config import settings
from datemedoc.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthUser":
        metadata = claims.get("user_metadata") or {}
        return cls(
            id=str(claims["sub"]),
            email=claims.get("email"),
            name=metadata.get("name") or metadata.get("full_name"),
        )


def decode_token(token: str) -> AuthUser:
    """
    Verifies a provider-issued access token.

    Raises:
        AuthenticationError: bad signature, expired, wrong audience, no `sub`
    """
    if not settings.supabase_jwt_secret:
        logger.error("JWT secret is not configured; rejecting token")
        raise AuthenticationError("Authentication is not configured")
    try:
        claims = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.PyJWTError as e:
        logger.info("Rejected bearer token: %s", type(e).__name__)
        raise AuthenticationError("Invalid or expired token")

    if not claims.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    return AuthUser.from_claims(claims)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")
    return decode_token(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthUser]:
    if credentials is None or not credentials.credentials:
        return None
    try:
        return decode_token(credentials.credentials)
    except AuthenticationError:
        return None
