"""
Authentication dependencies.

Sign-up, login and sessions live in the hosted auth service. It hands the
browser a signed JWT; we only verify that token and read the user's id
(the "sub" claim), email and metadata from it.

Usage in a route:
    @router.get("/mine")
    async def mine(user: AuthUser = Depends(get_current_user)):
        ...
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthUser:
    """Identity carried by a verified access token."""
    id: UUID
    email: str = ""
    metadata: dict = field(default_factory=dict)

    @property
    def full_name(self) -> Optional[str]:
        return self._meta_text("full_name")

    @property
    def username(self) -> Optional[str]:
        return self._meta_text("username")

    def _meta_text(self, key: str) -> Optional[str]:
        value = self.metadata.get(key)
        if not isinstance(value, str):
            return None
        return value.strip() or None


def decode_access_token(token: str, settings: Settings) -> AuthUser:
    """Verify a token and build the AuthUser. Raises jwt.InvalidTokenError."""
    payload = jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
    )
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError as e:
        raise jwt.InvalidTokenError("Token subject is not a user id") from e

    return AuthUser(
        id=user_id,
        email=payload.get("email") or "",
        metadata=payload.get("user_metadata") or {},
    )


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Optional[AuthUser]:
    """The signed-in user, or None for anonymous/invalid requests."""
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials, settings)
    except jwt.InvalidTokenError as e:
        logger.info("Rejected access token: %s", e)
        return None


async def get_current_user(
    user: Optional[AuthUser] = Depends(get_optional_user),
) -> AuthUser:
    """Like get_optional_user, but a missing user is a 401."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user
