"""Bearer token verification for tokens minted by the identity service.

The identity service signs access tokens with a shared secret
(JWT_SECRET, HS256 by default).  This service only verifies them;
``create_access_token`` exists for local development and tests.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt

from watchtime.core.config import SETTINGS

ACCESS_TOKEN_TTL_DAYS = 7  # matches the identity service's session length


def create_access_token(
    *,
    sub: str,
    ttl: timedelta = timedelta(days=ACCESS_TOKEN_TTL_DAYS),
    extra_claims: dict | None = None,
) -> str:
    """Build and sign a token the way the identity service does."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "exp": now + ttl,
        "iat": now,
        "jti": str(uuid.uuid4()),
        **(extra_claims or {}),
    }
    if SETTINGS.jwt_issuer:
        payload["iss"] = SETTINGS.jwt_issuer
    return jwt.encode(payload, SETTINGS.jwt_secret, algorithm=SETTINGS.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry, return the payload.

    Pins the algorithm to the configured one to prevent alg:none and
    alg-switching attacks.  The issuer is checked only when configured.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        SETTINGS.jwt_secret,
        algorithms=[SETTINGS.jwt_algorithm],
        issuer=SETTINGS.jwt_issuer,
        options={"require": ["exp"], "verify_aud": False},
    )


def subject_of(claims: dict) -> str | None:
    """User id carried by the token.

    Standard ``sub`` first; older identity-service tokens carry
    ``userId`` instead.
    """
    sub = claims.get("sub") or claims.get("userId")
    if sub is None:
        return None
    sub = str(sub).strip()
    return sub or None
