"""
Current-user endpoints.

1. GET /auth/me — Who is signed in (null when anonymous)
2. POST /auth/sync-profile — Copy signup metadata onto the profile row
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthUser, get_current_user, get_optional_user
from app.database import get_db
from app.schemas.users import CurrentUser, MeResponse, SyncProfileResponse
from app.services.profiles import UsernameTakenError, get_profile, sync_profile

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
async def get_me(
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the signed-in user's display fields.

    Profile values win; token metadata fills the gaps for users who
    haven't got a profile row yet.
    """
    if user is None:
        return MeResponse(user=None)

    profile = await get_profile(db, user)
    return MeResponse(user=CurrentUser(
        email=user.email,
        username=(profile.username if profile else None) or user.username,
        full_name=(profile.full_name if profile else None) or user.full_name,
        plan=profile.plan if profile else "free",
    ))


@router.post("/sync-profile", response_model=SyncProfileResponse)
async def sync_my_profile(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create or update the profile from signup metadata. Call after login."""
    try:
        await sync_profile(db, user)
    except UsernameTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SyncProfileResponse(ok=True)
