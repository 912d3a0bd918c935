"""
Bearer token authentication for the API.

Security model:
- Claim endpoints require `Authorization: Bearer <session token>`
- Tokens are verified statelessly (signature + expiry); there is no
  session table and no refresh, an expired token means logging in again
- No query param token support (prevents log/referrer leakage)
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, get_settings
from .errors import MissingOrMalformedAuth
from .tokens import SessionClaims, verify_session_token


# auto_error=False so a missing header surfaces as our own 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> SessionClaims:
    """
    Resolve the caller's session from the bearer token.

    Raises:
        MissingOrMalformedAuth: header absent or not a Bearer credential
        InvalidOrExpiredToken: token signature invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise MissingOrMalformedAuth()

    return verify_session_token(
        token=credentials.credentials,
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


async def get_current_identity(session: SessionClaims = Depends(get_session)) -> str:
    return session.identity
