from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from farmrelay.core.config import settings
from farmrelay.core.errors import AuthRejected


def decode_token(token: str | None, *, secret: str | None = None, algorithm: str | None = None) -> dict[str, Any]:
    """Verify a handshake token and return its claims."""
    if not token:
        raise AuthRejected("missing token")
    try:
        claims = jwt.decode(
            token,
            secret or settings.JWT_SECRET,
            algorithms=[algorithm or settings.JWT_ALGORITHM],
        )
    except jwt.PyJWTError as e:
        raise AuthRejected(f"invalid token: {e}") from e
    if not isinstance(claims, dict):
        raise AuthRejected("token claims must be an object")
    return claims


def encode_token(
    claims: dict[str, Any],
    *,
    secret: str | None = None,
    algorithm: str | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """Mint a token. Only used by tooling and tests; issuance lives elsewhere."""
    payload = dict(claims)
    if expires_in is not None:
        payload["exp"] = datetime.now(timezone.utc) + expires_in
    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=algorithm or settings.JWT_ALGORITHM)


def token_from_headers(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value:
        return None
    return value.strip()
