"""Stateless bearer-token gate.

Tokens are HS256 JWTs signed with `JWT_SECRET`; nothing is stored server-side,
so logout is purely a client concern.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import InvalidInput, TokenInvalid, Unauthenticated
from .settings import settings

log = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def check_credentials(username: Optional[str], password: Optional[str]) -> None:
    """Validate a login attempt against the configured account.

    Raises:
        InvalidInput: Username or password missing.
        Unauthenticated: Credentials do not match.
    """
    if not username or not password:
        raise InvalidInput("Username and password are required")
    user_ok = hmac.compare_digest(username, settings.AUTH_USERNAME)
    pass_ok = hmac.compare_digest(password, settings.AUTH_PASSWORD)
    if not (user_ok and pass_ok):
        log.info("auth.login_rejected username=%s", username)
        raise Unauthenticated("Invalid username or password")


def issue_token(username: str, now: Optional[datetime] = None) -> str:
    """Sign a token for `username` valid for `JWT_EXPIRES_HOURS`."""
    now = now or datetime.now(timezone.utc)
    payload = {
        "username": username,
        "loginTime": now.isoformat(),
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry and return the claims.

    Raises:
        TokenInvalid: Expired, tampered or malformed token, or no username claim.
    """
    try:
        claims = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenInvalid("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenInvalid("Invalid token") from exc
    if not claims.get("username"):
        raise TokenInvalid("Invalid token")
    return claims


async def require_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Dict[str, Any]:
    """FastAPI dependency: return token claims or raise an AuthError."""
    if creds is None or not creds.credentials:
        raise Unauthenticated("Access token required")
    return decode_token(creds.credentials)
