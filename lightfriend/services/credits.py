"""
Credit and usage accounting.

BILLING MODEL:
- Monthly quota (``credits_left``): granted by the active plan on every renewal,
  consumed first, reset when the plan renews or expires.
- Purchased overage credits (``credits``): bought through Stripe, never expire,
  consumed once the monthly quota is gone.
- Proactive notifications (``msgs_left``): separate monthly counter for the
  Escape plan.

Balances are stored in currency units. A negative balance is treated as zero
for every estimate and for every charge.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import asdict, dataclass

from sqlalchemy.orm import Session

from lightfriend import metrics
from lightfriend.core.exceptions import InsufficientCreditsError, InvalidAmountError
from lightfriend.models.models import ActivityType, SubTier, UsageLog, User

logger = logging.getLogger(__name__)

VOICE_SECOND_COST = 0.20 / 60  # 0.20 per voice minute
MESSAGE_COST = 0.15
MIN_TOPUP_AMOUNT_CREDITS = 5.00
AUTO_TOPUP_THRESHOLD = 2.00
PLAN_PERIOD_SECONDS = 30 * 24 * 60 * 60

# Monthly quota granted on each renewal, in credits
MONTHLY_QUOTA_CREDITS: dict[SubTier, float] = {
    SubTier.TIER_0: 0.0,
    SubTier.TIER_1: 30 * MESSAGE_COST,
    SubTier.TIER_2: 100 * MESSAGE_COST,
}

PROACTIVE_MESSAGES: dict[SubTier, int] = {
    SubTier.TIER_0: 0,
    SubTier.TIER_1: 0,
    SubTier.TIER_2: 100,
}


@dataclass(frozen=True)
class UsageEstimate:
    balance: float
    minutes: int
    seconds: int
    messages: int


@dataclass(frozen=True)
class ChargeResult:
    log: UsageLog
    from_monthly: float
    from_purchased: float
    topup_needed: bool


def _now() -> int:
    return int(time.time())


def estimate_usage(balance: float) -> UsageEstimate:
    """How many voice minutes/seconds and messages a balance buys."""
    if balance <= 0:
        return UsageEstimate(balance=balance, minutes=0, seconds=0, messages=0)
    voice_seconds = round(balance / VOICE_SECOND_COST, 6)
    return UsageEstimate(
        balance=balance,
        minutes=math.floor(voice_seconds / 60),
        seconds=math.floor(voice_seconds % 60),
        messages=math.floor(round(balance / MESSAGE_COST, 6)),
    )


def credit_summary(user: User) -> dict:
    return {
        "purchased": asdict(estimate_usage(user.credits or 0.0)),
        "monthly": asdict(estimate_usage(user.credits_left or 0.0)),
        "msgs_left": max(user.msgs_left or 0, 0),
    }


def available_credits(user: User) -> float:
    return max(user.credits_left or 0.0, 0.0) + max(user.credits or 0.0, 0.0)


def ensure_credits(user: User, amount: float) -> None:
    """Raise before doing paid work the user cannot cover."""
    available = available_credits(user)
    if amount > available + 1e-9:
        raise InsufficientCreditsError(required=amount, available=available)


def _append_log(db: Session, user: User, activity_type: ActivityType | str, **fields) -> UsageLog:
    value = activity_type.value if isinstance(activity_type, ActivityType) else activity_type
    log = UsageLog(user_id=user.id, activity_type=value, timestamp=fields.pop("timestamp", None) or _now(), **fields)
    db.add(log)
    return log


def charge_usage(
    db: Session,
    user: User,
    activity_type: ActivityType | str,
    amount: float,
    *,
    sid: str | None = None,
    status: str | None = None,
    time_consumed: int | None = None,
    reason: str | None = None,
    now: int | None = None,
) -> ChargeResult:
    """
    Consume ``amount`` credits for a billable action and append a usage log.

    Monthly quota is drawn first, purchased credits second.

    Raises:
        InvalidAmountError: amount is negative
        InsufficientCreditsError: combined balance does not cover the amount
    """
    if amount < 0:
        raise InvalidAmountError(amount)
    timestamp = now or _now()
    available = available_credits(user)
    activity = activity_type.value if isinstance(activity_type, ActivityType) else activity_type

    if amount > available + 1e-9:
        _append_log(
            db, user, activity,
            timestamp=timestamp, sid=sid, status="failed", success=False,
            credits=0.0, time_consumed=time_consumed, reason="insufficient credits",
        )
        db.commit()
        logger.info(
            "Charge refused for user %s: %s needs %.4f, has %.4f", user.id, activity, amount, available
        )
        raise InsufficientCreditsError(required=amount, available=available)

    monthly = max(user.credits_left or 0.0, 0.0)
    from_monthly = min(monthly, amount)
    from_purchased = amount - from_monthly
    purchased_before = max(user.credits or 0.0, 0.0)

    user.credits_left = monthly - from_monthly
    user.credits = purchased_before - from_purchased

    topup_needed = (
        bool(user.charge_when_under)
        and from_purchased > 0
        and purchased_before >= AUTO_TOPUP_THRESHOLD > user.credits
    )
    log = _append_log(
        db, user, activity,
        timestamp=timestamp, sid=sid, status=status or "completed", success=True,
        credits=amount, time_consumed=time_consumed, reason=reason,
        recharge_threshold_timestamp=timestamp if topup_needed else None,
        zero_credits_timestamp=timestamp if available_credits(user) <= 0 else None,
    )
    db.commit()
    metrics.credits_charged(activity, amount)
    logger.info(
        "Charged user %s %.4f credits for %s (monthly %.4f, purchased %.4f)",
        user.id, amount, activity, from_monthly, from_purchased,
    )
    return ChargeResult(log=log, from_monthly=from_monthly, from_purchased=from_purchased, topup_needed=topup_needed)


def add_credits(
    db: Session,
    user: User,
    amount: float,
    *,
    reason: str,
    activity_type: ActivityType = ActivityType.CREDITS_PURCHASE,
    sid: str | None = None,
) -> float:
    """Add purchased credits; returns the new balance."""
    if amount <= 0:
        raise InvalidAmountError(amount)
    user.credits = (user.credits or 0.0) + amount
    _append_log(db, user, activity_type, sid=sid, status="completed", success=True, credits=amount, reason=reason)
    db.commit()
    logger.info("Added %.2f credits to user %s (%s), balance %.2f", amount, user.id, reason, user.credits)
    return user.credits


def reset_credits(db: Session, user: User, *, reason: str = "admin reset") -> None:
    previous = user.credits or 0.0
    user.credits = 0.0
    _append_log(
        db, user, ActivityType.CREDITS_ADJUSTMENT,
        status="completed", success=True, credits=-previous, reason=reason,
    )
    db.commit()


def adjust_monthly_credits(db: Session, user: User, delta: float, *, reason: str = "admin adjustment") -> float:
    user.credits_left = max((user.credits_left or 0.0) + delta, 0.0)
    _append_log(
        db, user, ActivityType.CREDITS_ADJUSTMENT,
        status="completed", success=True, credits=delta, reason=reason,
    )
    db.commit()
    return user.credits_left


def adjust_messages(db: Session, user: User, delta: int) -> int:
    user.msgs_left = max((user.msgs_left or 0) + delta, 0)
    db.commit()
    return user.msgs_left


def apply_subscription(db: Session, user: User, tier: SubTier, *, now: int | None = None) -> None:
    """Activate or renew ``tier``: refill monthly quota and push the expiry forward."""
    start = now or _now()
    user.sub_tier = tier
    user.time_to_live = start + PLAN_PERIOD_SECONDS
    user.credits_left = MONTHLY_QUOTA_CREDITS[tier]
    user.msgs_left = PROACTIVE_MESSAGES[tier]
    db.commit()
    logger.info("User %s plan set to %s until %s", user.id, tier.value, user.time_to_live)


def clear_subscription(db: Session, user: User) -> None:
    user.sub_tier = None
    user.time_to_live = None
    user.credits_left = 0.0
    user.msgs_left = 0
    db.commit()


def expire_plan_if_needed(db: Session, user: User, now: int | None = None) -> bool:
    """
    Drop an expired plan back to no subscription.

    Purchased credits and the discount flag are preserved.
    Returns True when the plan was expired by this call.
    """
    if user.sub_tier is None or user.time_to_live is None:
        return False
    if (now or _now()) <= user.time_to_live:
        return False
    old_tier = user.sub_tier
    clear_subscription(db, user)
    logger.info("Plan %s expired for user %s", getattr(old_tier, "value", old_tier), user.id)
    return True


def update_auto_topup(db: Session, user: User, active: bool, amount: float | None) -> float | None:
    """Store auto top-up settings; amounts below the minimum are raised to it."""
    if amount is not None:
        if amount <= 0:
            raise InvalidAmountError(amount)
        user.charge_back_to = max(amount, MIN_TOPUP_AMOUNT_CREDITS)
    elif active and user.charge_back_to is None:
        user.charge_back_to = MIN_TOPUP_AMOUNT_CREDITS
    user.charge_when_under = active
    db.commit()
    return user.charge_back_to
