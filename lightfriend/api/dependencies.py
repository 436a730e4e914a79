"""Common dependencies for authentication and admin access control."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, TypeAlias

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lightfriend.core.audit import log_denied, log_failure
from lightfriend.core.exceptions import (
    AdminRequiredError,
    AuthenticationError,
    DatastoreError,
    ForbiddenError,
)
from lightfriend.core.security import (
    TokenExpiredError,
    TokenValidationError,
    decode_token,
    subject_user_id,
)
from lightfriend.db.session import get_db
from lightfriend.models.models import User


def get_current_user_id(authorization: str = Header(None)) -> int:
    if not authorization or not authorization.lower().startswith("bearer "):
        log_failure("auth.token.parse", user_id=None, error="missing_token")
        raise AuthenticationError("No authorization token provided")
    token = authorization[7:]
    try:
        return subject_user_id(decode_token(token.strip()))
    except TokenExpiredError as exc:
        log_failure("auth.token.expired", user_id=None, error="expired")
        raise AuthenticationError() from exc
    except TokenValidationError as exc:
        log_failure("auth.token.invalid", user_id=None, error="invalid")
        raise AuthenticationError() from exc


CurrentUserDep: TypeAlias = Annotated[int, Depends(get_current_user_id)]
DbDep: TypeAlias = Annotated[Session, Depends(get_db)]


@dataclass(frozen=True)
class AuthUser:
    user_id: int
    is_admin: bool


def get_auth_user(user_id: CurrentUserDep, db: DbDep) -> AuthUser:
    """
    Resolve the token subject against the user store.

    A token for a deleted user is rejected with 401.
    """
    try:
        is_admin = db.scalar(select(User.is_admin).where(User.id == user_id))
    except SQLAlchemyError as exc:
        log_failure("auth.admin.lookup", user_id=user_id, error=type(exc).__name__)
        raise DatastoreError("Failed to check admin status") from exc
    if is_admin is None:
        log_failure("auth.user.missing", user_id=user_id, error="user_not_found")
        raise AuthenticationError()
    return AuthUser(user_id=user_id, is_admin=bool(is_admin))


AuthUserDep: TypeAlias = Annotated[AuthUser, Depends(get_auth_user)]


def require_admin(auth_user: AuthUserDep) -> AuthUser:
    if not auth_user.is_admin:
        log_denied("auth.admin.required", user_id=auth_user.user_id, reason="not_admin")
        raise AdminRequiredError()
    return auth_user


AdminDep: TypeAlias = Annotated[AuthUser, Depends(require_admin)]


def require_self_or_admin(user_id: int, auth_user: AuthUser) -> None:
    """Allow acting on ``user_id`` only for that user or an admin."""
    if auth_user.user_id != user_id and not auth_user.is_admin:
        log_denied("auth.self_or_admin", user_id=auth_user.user_id, reason="not_owner", target_user_id=user_id)
        raise ForbiddenError()
