"""Profile lookup and first-login sync from identity-provider claims."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vca.auth.identity import IdentityClaims
from vca.db.models import Profile, Role

logger = structlog.get_logger()


async def get_profile_by_id(db: AsyncSession, profile_id: str) -> Profile | None:
    """Fetch a profile by identity-provider id."""
    return await db.get(Profile, profile_id)


async def get_profile_by_email(db: AsyncSession, email: str) -> Profile | None:
    result = await db.execute(select(Profile).where(Profile.email == email.lower()))
    return result.scalar_one_or_none()


async def get_profile(db: AsyncSession, claims: IdentityClaims) -> Profile | None:
    """Find the caller's profile by id first, then by email for migrated accounts."""
    profile = await get_profile_by_id(db, claims.user_id)
    if profile is not None:
        return profile
    if claims.email:
        return await get_profile_by_email(db, claims.email)
    return None


def display_name_from_claims(claims: IdentityClaims) -> str:
    """Name from claims, else the email local part, else 'User'."""
    if claims.name:
        return claims.name
    if claims.email:
        local = claims.email.split("@")[0]
        if local:
            return local
    return "User"


async def sync_profile(db: AsyncSession, claims: IdentityClaims) -> Profile | None:
    """Create a member profile for a first-time login.

    Returns None when the claims carry no email, since a profile needs one.
    """
    if not claims.email:
        return None

    now = datetime.now(timezone.utc)
    profile = Profile(
        id=claims.user_id,
        name=display_name_from_claims(claims),
        email=claims.email.lower(),
        role=Role.MEMBER.value,
        avatar_url=claims.avatar_url,
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    await db.commit()
    logger.info("profile_created", profile_id=profile.id)
    return profile


async def get_profile_with_sync(db: AsyncSession, claims: IdentityClaims) -> Profile | None:
    """Existing profile, or a freshly synced one on first login."""
    profile = await get_profile(db, claims)
    if profile is not None:
        return profile
    return await sync_profile(db, claims)
