"""FastAPI session dependencies."""

from __future__ import annotations

import jwt
import structlog
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vca.auth.identity import verify_session_token
from vca.auth.session import Anonymous, Authenticated, SessionContext, resolve_session
from vca.config import get_settings
from vca.database import get_session
from vca.errors import AuthenticationRequired, AuthorizationError

logger = structlog.get_logger()

_bearer_optional = HTTPBearer(auto_error=False)


async def get_session_context(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer_optional),
    db: AsyncSession = Depends(get_session),
) -> SessionContext:
    """Resolve the caller's session. Never raises; bad tokens read as anonymous."""
    if credentials is None:
        return Anonymous()
    try:
        claims = verify_session_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        logger.info("session_token_rejected", error=str(e))
        return Anonymous()
    return await resolve_session(db, claims, get_settings().profile_fetch_timeout_seconds)


async def require_member(
    session: SessionContext = Depends(get_session_context),
) -> SessionContext:
    """Any signed-in caller, including a degraded session."""
    if isinstance(session, Anonymous):
        raise AuthenticationRequired()
    return session


async def require_profile(
    session: SessionContext = Depends(get_session_context),
) -> Authenticated:
    """A signed-in caller whose stored profile is available (needed to write rows they own)."""
    if isinstance(session, Authenticated):
        return session
    if isinstance(session, Anonymous):
        raise AuthenticationRequired()
    raise AuthorizationError("Your profile is temporarily unavailable; please retry shortly")


async def require_admin(
    session: SessionContext = Depends(get_session_context),
) -> Authenticated:
    """Admin role on a stored profile. Checked before any mutation is attempted."""
    if isinstance(session, Anonymous):
        raise AuthenticationRequired()
    if not isinstance(session, Authenticated) or not session.is_admin:
        raise AuthorizationError()
    return session
