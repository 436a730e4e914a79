from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError

from lightfriend.core.config import settings

ALGORITHM = "HS256"


class TokenValidationError(Exception):
    """Raised when a token cannot be validated."""


class TokenExpiredError(TokenValidationError):
    """Raised when a token is expired."""


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    """Sign an access token for ``user_id``.

    The API never mints tokens; admin scripts and tests do.
    """
    minutes = expires_minutes if expires_minutes is not None else settings.JWT_ACCESS_TOKEN_MINUTES
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("Token has expired") from exc
    except PyJWTInvalidTokenError as exc:
        raise TokenValidationError("Token is invalid") from exc
    return payload


def subject_user_id(payload: dict[str, Any]) -> int:
    """Return the user id carried in the ``sub`` claim."""
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenValidationError("Token subject is not a user id") from exc
