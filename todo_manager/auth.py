# PURPOSE: session issuer and current-identity dependency.
# - Passwords: bcrypt (no passlib).
# - Tokens: HS256 JWT via python-jose; claims carry id, name and email.
# - get_current_user(): verify bearer token, resolve identity in the store,
#   renew the token via X-New-Token when it is close to expiry.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
from fastapi import Depends, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from .api.deps import get_db, get_settings
from .config import Settings
from .exceptions import AuthError
from .logging_utils import log_event
from .models import UserPublic
from .users_db import get_user

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

NEW_TOKEN_HEADER = "X-New-Token"


# --- Password helpers (bcrypt, no passlib) ---

def hash_password(password: str) -> str:
    """Return a bcrypt hash for the given plain password."""
    if not isinstance(password, str):
        raise TypeError("password must be a string")
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # malformed stored hash or password over bcrypt's 72-byte limit
        return False


# --- JWT helpers ---

def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_access_token_ttl_minutes(settings: Settings) -> int:
    """
    Return access token TTL in minutes, parsed safely from settings.
    Falls back to 7 days if env contains an unusable value.
    """
    try:
        minutes = int(settings.JWT_EXPIRE_MIN)
    except (TypeError, ValueError):
        return 60 * 24 * 7
    return minutes if minutes > 0 else 60 * 24 * 7


@dataclass(frozen=True)
class TokenClaims:
    identity_id: int
    name: str
    email: str
    expires_at: datetime

    def expires_soon(self, threshold_minutes: int, now: datetime | None = None) -> bool:
        return self.expires_at - (now or _now_utc()) <= timedelta(minutes=threshold_minutes)


def issue_token(
    identity_id: int,
    name: str,
    email: str,
    *,
    settings: Settings,
    expires_in: timedelta | None = None,
) -> str:
    """Create a signed bearer token for an identity."""
    now = _now_utc()
    expire = now + (expires_in or timedelta(minutes=get_access_token_ttl_minutes(settings)))
    payload: Dict[str, Any] = {
        "sub": str(identity_id),
        "name": name,
        "email": email,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str, *, settings: Settings) -> TokenClaims:
    """Decode and check a token; raises AuthError (expired=True for stale tokens)."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthError("Token expired. Please log in again", ["Token expired"], expired=True)
    except JWTError:
        raise AuthError("Invalid token", ["Token is not valid"])

    try:
        return TokenClaims(
            identity_id=int(payload["sub"]),
            name=str(payload.get("name", "")),
            email=str(payload.get("email", "")),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError):
        raise AuthError("Invalid token", ["Token is not valid"])


def get_current_user(
    response: Response,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserPublic:
    """Resolve the bearer token to a stored identity or raise AuthError (401)."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthError("Access token required", ["Missing bearer token"])

    claims = verify_token(credentials.credentials, settings=settings)

    row = get_user(db, claims.identity_id)
    if row is None:
        # well-formed token for an identity we do not know: same as a bad signature
        raise AuthError("Invalid token", ["Token is not valid"])

    if claims.expires_soon(settings.JWT_REFRESH_THRESHOLD_MIN):
        response.headers[NEW_TOKEN_HEADER] = issue_token(
            row.id, row.name, row.email, settings=settings
        )
        log_event(logger, "token_renewed", user_id=row.id)

    return UserPublic.model_validate(row)
