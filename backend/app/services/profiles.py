"""
Profile rows for authenticated users.

The auth service owns accounts; we keep a `users` row per account for the
plan, Stripe customer id and display fields. Rows are created lazily the
first time a user does something that needs one.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthUser
from app.models import Roast, User

logger = logging.getLogger(__name__)


class UsernameTakenError(Exception):
    pass


async def get_profile(db: AsyncSession, auth_user: AuthUser) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == auth_user.id))
    return result.scalar_one_or_none()


async def get_or_create_profile(db: AsyncSession, auth_user: AuthUser) -> User:
    """Load the user's profile, creating a free-plan row if it's missing."""
    profile = await get_profile(db, auth_user)
    if profile:
        return profile

    profile = User(
        id=auth_user.id,
        email=auth_user.email,
        full_name=auth_user.full_name,
        username=auth_user.username,
        plan="free",
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise UsernameTakenError("That username is already taken.") from e
    await db.refresh(profile)
    logger.info("Created profile for user %s", auth_user.id)
    return profile


async def sync_profile(db: AsyncSession, auth_user: AuthUser) -> User:
    """Copy full_name/username from the token metadata onto the profile."""
    profile = await get_profile(db, auth_user)
    if profile is None:
        return await get_or_create_profile(db, auth_user)

    changed = False
    if auth_user.full_name is not None and profile.full_name != auth_user.full_name:
        profile.full_name = auth_user.full_name
        changed = True
    if auth_user.username is not None and profile.username != auth_user.username:
        profile.username = auth_user.username
        changed = True

    if changed:
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise UsernameTakenError("That username is already taken.") from e
    return profile


async def count_completed_roasts(db: AsyncSession, user_id) -> int:
    result = await db.execute(
        select(func.count(Roast.id)).where(
            Roast.user_id == user_id,
            Roast.status == "completed",
        )
    )
    return result.scalar() or 0
