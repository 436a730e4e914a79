"""
Subscription gating for assistant tools.

Tools live under ``/api/call/{tool}/...``. Access is decided from two
independent axes on the user row:

- ``discount``: legacy flag, unlocks every tool
- ``sub_tier``: "tier 2" (Escape) unlocks every tool, "tier 1" (Basic)
  unlocks the search/weather/assistant tools only, anything else unlocks nothing
"""
from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lightfriend import metrics
from lightfriend.api.dependencies import AuthUserDep, require_self_or_admin
from lightfriend.core.audit import log_audit_event, log_denied, log_failure
from lightfriend.core.exceptions import (
    DatastoreError,
    InvalidUserIdError,
    SubscriptionRequiredError,
    UserNotFoundError,
)
from lightfriend.db.session import get_db
from lightfriend.models.models import SubTier, Tool, User
from lightfriend.services import credits

logger = logging.getLogger(__name__)

TIER_1_TOOLS: frozenset[Tool] = frozenset({Tool.PERPLEXITY, Tool.WEATHER, Tool.ASSISTANT})


def extract_tool_name(path: str) -> str:
    """Return the ``{tool}`` segment of ``/api/call/{tool}...`` or an empty string."""
    parts = path.split("/")
    if len(parts) >= 4 and parts[2] == "call":
        return parts[3]
    return ""


def requires_subscription(path: str, sub_tier: SubTier | str | None, discount: bool) -> bool:
    """
    Decide whether the request path needs a higher subscription.

    Returns True when access must be denied.
    """
    tool_name = extract_tool_name(path)
    tier = SubTier.parse(sub_tier)
    logger.debug(
        "Checking subscription access: path=%s tool=%s sub_tier=%s discount=%s",
        path, tool_name, tier.value if tier else None, discount,
    )

    if discount:
        logger.debug("Access granted via discount for tool %s", tool_name)
        return False

    match tier:
        case SubTier.TIER_2:
            denied = False
        case SubTier.TIER_1:
            denied = Tool.parse(tool_name) not in TIER_1_TOOLS
        case SubTier.TIER_0 | None:
            denied = True

    logger.debug("Subscription decision for tool %s: %s", tool_name, "denied" if denied else "allowed")
    return denied


def _parse_user_id(request: Request) -> int:
    raw = request.query_params.get("user_id")
    if raw is None:
        raise InvalidUserIdError()
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidUserIdError() from exc


def check_subscription_access(
    request: Request,
    auth_user: AuthUserDep,
    db: Session = Depends(get_db),
) -> User:
    """
    Gate a ``/api/call/...`` route on the caller's subscription.

    The user is identified by the ``user_id`` query parameter, which must
    match the bearer token subject unless the caller is an admin. Returns
    the loaded user so routes can charge usage against it.
    """
    path = request.url.path
    tool_name = extract_tool_name(path)
    try:
        user_id = _parse_user_id(request)
    except InvalidUserIdError:
        log_denied("gate.tool.invalid_user", user_id=None, reason="missing_or_invalid_user_id", path=path)
        raise

    require_self_or_admin(user_id, auth_user)

    try:
        user = db.scalar(select(User).where(User.id == user_id))
    except SQLAlchemyError as exc:
        logger.error("Failed to load user %s for access check: %s", user_id, exc)
        log_failure("gate.tool.lookup", user_id=user_id, error=type(exc).__name__, path=path)
        raise DatastoreError() from exc

    if user is None:
        log_denied("gate.tool.unknown_user", user_id=user_id, reason="user_not_found", path=path)
        raise UserNotFoundError()

    # A lapsed plan is cleared before the tier is checked
    credits.expire_plan_if_needed(db, user)

    if requires_subscription(path, user.sub_tier, bool(user.discount)):
        metrics.access_gate_decision(tool_name, allowed=False)
        log_denied(
            "gate.tool.denied",
            user_id=user_id,
            reason="subscription_required",
            tool=tool_name,
            sub_tier=user.sub_tier.value if user.sub_tier else None,
        )
        raise SubscriptionRequiredError()

    metrics.access_gate_decision(tool_name, allowed=True)
    log_audit_event("gate.tool.allowed", user_id=user_id, tool=tool_name)
    return user
