"""
Identity-provider session token verification.

The identity provider signs session JWTs; we only verify them and read the
profile claims. HS* algorithms use ``auth_jwt_secret``; RS*/ES* algorithms
read the provider's public key from ``auth_jwt_public_key_path``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jwt

from vca.config import get_settings

_public_key: str | None = None


@dataclass(frozen=True)
class IdentityClaims:
    """Profile fields the identity provider vouches for."""

    user_id: str
    email: str | None = None
    name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> IdentityClaims:
        name = payload.get("name")
        if not name:
            parts = [payload.get("given_name") or payload.get("first_name"),
                     payload.get("family_name") or payload.get("last_name")]
            name = " ".join(p for p in parts if p) or None
        return cls(
            user_id=str(payload["sub"]),
            email=(payload.get("email") or None),
            name=name,
            avatar_url=payload.get("picture") or payload.get("image_url") or None,
        )


def _verification_key() -> str:
    """Return the key used to verify tokens (cached after first read for asymmetric keys)."""
    global _public_key  # noqa: PLW0603
    settings = get_settings()
    if settings.auth_jwt_algorithm.upper().startswith("HS"):
        if not settings.auth_jwt_secret:
            msg = "VCA_AUTH_JWT_SECRET is required for HS* token algorithms"
            raise RuntimeError(msg)
        return settings.auth_jwt_secret
    if _public_key is None:
        _public_key = Path(settings.auth_jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset the cached public key (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_session_token(token: str) -> IdentityClaims:
    """
    Verify an identity-provider session token and extract its claims.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or lacks a subject.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["exp", "sub"]}
    kwargs: dict[str, Any] = {}
    if settings.auth_jwt_issuer:
        kwargs["issuer"] = settings.auth_jwt_issuer
    if settings.auth_jwt_audience:
        kwargs["audience"] = settings.auth_jwt_audience
    else:
        options["verify_aud"] = False

    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _verification_key(),
            algorithms=[settings.auth_jwt_algorithm],
            options=options,
            **kwargs,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)
    return IdentityClaims.from_payload(payload)
