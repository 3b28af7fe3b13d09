"""Per-request session context.

Every handler receives exactly one of:

- ``Authenticated``: verified token and a stored profile;
- ``Anonymous``: no token, or a token that failed verification;
- ``Degraded``: verified token, but the profile store was slow, failing,
  or the claims could not produce a profile. The page still renders with a
  member-level profile synthesised from the identity claims.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vca.auth.identity import IdentityClaims
from vca.auth.service import display_name_from_claims, get_profile_with_sync
from vca.db.models import Profile, Role

logger = structlog.get_logger()


@dataclass(frozen=True)
class FallbackProfile:
    """Profile stand-in built from identity claims. Never persisted."""

    id: str
    name: str
    email: str
    avatar_url: str | None = None
    role: str = Role.MEMBER.value
    bio: str | None = None
    github_url: str | None = None
    slack_handle: str | None = None
    project_idea: str | None = None
    repo_url: str | None = None

    @property
    def is_admin(self) -> bool:
        return False

    @classmethod
    def from_claims(cls, claims: IdentityClaims) -> FallbackProfile:
        return cls(
            id=claims.user_id,
            name=display_name_from_claims(claims),
            email=claims.email or "",
            avatar_url=claims.avatar_url,
        )


@dataclass(frozen=True)
class Authenticated:
    profile: Profile
    claims: IdentityClaims
    kind: str = field(default="authenticated", init=False)

    @property
    def is_admin(self) -> bool:
        return self.profile.is_admin

    @property
    def user_id(self) -> str:
        return self.profile.id


@dataclass(frozen=True)
class Anonymous:
    kind: str = field(default="anonymous", init=False)

    @property
    def is_admin(self) -> bool:
        return False

    @property
    def user_id(self) -> None:
        return None


@dataclass(frozen=True)
class Degraded:
    fallback_profile: FallbackProfile
    reason: str
    claims: IdentityClaims
    kind: str = field(default="degraded", init=False)

    @property
    def is_admin(self) -> bool:
        return False

    @property
    def user_id(self) -> str:
        return self.fallback_profile.id


SessionContext = Authenticated | Anonymous | Degraded

REASON_TIMEOUT = "profile_timeout"
REASON_STORE_ERROR = "profile_store_error"
REASON_NO_PROFILE = "profile_unavailable"


async def resolve_session(
    db: AsyncSession,
    claims: IdentityClaims | None,
    timeout_seconds: float,
) -> SessionContext:
    """Turn verified claims into a session context, degrading instead of failing."""
    if claims is None:
        return Anonymous()

    try:
        profile = await asyncio.wait_for(get_profile_with_sync(db, claims), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("profile_fetch_timed_out", user_id=claims.user_id, timeout=timeout_seconds)
        await db.rollback()
        reason = REASON_TIMEOUT
        profile = None
    except SQLAlchemyError:
        logger.warning("profile_fetch_failed", user_id=claims.user_id, exc_info=True)
        await db.rollback()
        reason = REASON_STORE_ERROR
        profile = None
    else:
        reason = REASON_NO_PROFILE

    if profile is None:
        logger.warning("session_degraded", user_id=claims.user_id, reason=reason)
        return Degraded(fallback_profile=FallbackProfile.from_claims(claims), reason=reason, claims=claims)
    return Authenticated(profile=profile, claims=claims)
