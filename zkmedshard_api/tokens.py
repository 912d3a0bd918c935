"""
Session tokens.

A session token is a compact JWT carrying:
- sub (normalized wallet address)
- iat / exp

Tokens are stateless: there is no server-side session table and no
revocation list, so a token stays valid until `exp`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from .errors import InvalidOrExpiredToken
from .identity import normalize_identity


@dataclass(frozen=True)
class SessionClaims:
    identity: str
    expires_at: datetime


def mint_session_token(
    *,
    identity: str,
    secret: str,
    algorithm: str = "HS256",
    ttl: timedelta = timedelta(hours=12),
    now: datetime | None = None,
) -> tuple[str, SessionClaims]:
    issued_at = now or datetime.now(timezone.utc)
    claims = SessionClaims(
        identity=normalize_identity(identity),
        expires_at=issued_at + ttl,
    )
    token = jwt.encode(
        {
            "sub": claims.identity,
            "iat": int(issued_at.timestamp()),
            "exp": int(claims.expires_at.timestamp()),
        },
        secret,
        algorithm=algorithm,
    )
    return token, claims


def verify_session_token(*, token: str, secret: str, algorithm: str = "HS256") -> SessionClaims:
    """
    Check signature and expiry of a session token.

    Raises:
        InvalidOrExpiredToken: bad signature, expired, or missing subject
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as e:
        raise InvalidOrExpiredToken() from e

    subject = payload.get("sub")
    expires = payload.get("exp")
    if not subject or expires is None:
        raise InvalidOrExpiredToken()

    return SessionClaims(
        identity=normalize_identity(subject),
        expires_at=datetime.fromtimestamp(int(expires), tz=timezone.utc),
    )
