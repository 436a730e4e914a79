"""Admin dashboard API. Every route requires ``is_admin`` on the caller."""
import logging

from fastapi import APIRouter, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from lightfriend.api.dependencies import AdminDep, DbDep
from lightfriend.core.audit import log_audit_event
from lightfriend.core.config import settings
from lightfriend.core.exceptions import ConfigurationError, InvalidTierError, LightfriendException
from lightfriend.models import schemas
from lightfriend.models.models import (
    DiscountTier,
    SubTier,
    UsageLog,
    User,
    discount_rank,
    next_discount_tier,
)
from lightfriend.services import credits, email_service, twilio_service, users

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/users", response_model=list[schemas.UserInfo])
def list_users(_admin: AdminDep, db: DbDep):
    return [users.user_info(user) for user in users.list_users(db)]


@router.get("/usage-logs", response_model=list[schemas.UsageLogOut])
def list_usage_logs(
    _admin: AdminDep,
    db: DbDep,
    activity_type: str | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
):
    stmt = select(UsageLog).order_by(UsageLog.timestamp.desc(), UsageLog.id.desc()).limit(limit)
    if activity_type:
        stmt = stmt.where(UsageLog.activity_type == activity_type)
    return list(db.scalars(stmt))


@router.post("/verify/{user_id}", response_model=schemas.MessageOut)
def verify_user(user_id: int, admin: AdminDep, db: DbDep):
    user = users.get_user_or_404(db, user_id)
    user.verified = True
    db.commit()
    log_audit_event("admin.user.verify", user_id=admin.user_id, target_user_id=user_id)
    return schemas.MessageOut(message="User verified successfully")


@router.post("/set-preferred-number-default/{user_id}", response_model=schemas.MessageOut)
def set_preferred_number_default(user_id: int, admin: AdminDep, db: DbDep):
    if not settings.TWILIO_DEFAULT_NUMBER:
        raise ConfigurationError("TWILIO_DEFAULT_NUMBER")
    user = users.get_user_or_404(db, user_id)
    user.preferred_number = settings.TWILIO_DEFAULT_NUMBER
    db.commit()
    log_audit_event(
        "admin.user.preferred_number",
        user_id=admin.user_id,
        target_user_id=user_id,
        preferred_number=user.preferred_number,
    )
    return schemas.MessageOut(message="Preferred number reset to default")


@router.post("/discount-tier/{user_id}/{tier}", response_model=schemas.MessageOut)
def set_discount_tier(user_id: int, tier: str, admin: AdminDep, db: DbDep):
    """Set the legacy discount tier; ``next`` steps the user one rung up the ladder."""
    allowed = [t.value for t in DiscountTier] + ["none", "next"]
    requested = tier.strip().lower()
    if requested not in ("none", "next") and DiscountTier.parse(requested) is None:
        raise InvalidTierError(tier, allowed)
    user = users.get_user_or_404(db, user_id)
    old_tier = user.discount_tier
    match requested:
        case "none":
            new_tier = None
        case "next":
            new_tier = next_discount_tier(old_tier)
        case _:
            new_tier = DiscountTier.parse(requested)
    user.discount_tier = new_tier
    user.discount = new_tier is not None
    db.commit()
    log_audit_event(
        "admin.user.discount_tier",
        user_id=admin.user_id,
        target_user_id=user_id,
        discount_tier=new_tier.value if new_tier else None,
        upgraded=discount_rank(new_tier) > discount_rank(old_tier),
    )
    return schemas.MessageOut(message="Discount tier updated successfully")


@router.post("/subscription/{user_id}/{tier}", response_model=schemas.MessageOut)
def set_subscription(user_id: int, tier: str, admin: AdminDep, db: DbDep):
    allowed = [t.value for t in SubTier] + ["none"]
    new_tier = None
    if tier.strip().lower() != "none":
        new_tier = SubTier.parse(tier.replace("_", " "))
        if new_tier is None:
            raise InvalidTierError(tier, allowed)
    user = users.get_user_or_404(db, user_id)
    if new_tier is None:
        credits.clear_subscription(db, user)
    else:
        credits.apply_subscription(db, user, new_tier)
    log_audit_event(
        "admin.user.subscription",
        user_id=admin.user_id,
        target_user_id=user_id,
        sub_tier=new_tier.value if new_tier else None,
    )
    return schemas.MessageOut(message="Subscription tier updated successfully")


@router.post("/messages/{user_id}/{amount}")
def adjust_messages(user_id: int, amount: int, admin: AdminDep, db: DbDep):
    user = users.get_user_or_404(db, user_id)
    msgs_left = credits.adjust_messages(db, user, amount)
    log_audit_event("admin.user.messages", user_id=admin.user_id, target_user_id=user_id, delta=amount)
    return {"message": "Messages updated successfully", "msgs_left": msgs_left}


@router.post("/monthly-credits/{user_id}/{amount}")
def adjust_monthly_credits(user_id: int, amount: float, admin: AdminDep, db: DbDep):
    user = users.get_user_or_404(db, user_id)
    credits_left = credits.adjust_monthly_credits(db, user, amount)
    log_audit_event("admin.credits.monthly", user_id=admin.user_id, target_user_id=user_id, delta=amount)
    return {"message": "Monthly credits updated successfully", "credits_left": credits_left}


def _broadcast_recipients(db: Session) -> list[User]:
    return list(db.scalars(select(User).where(User.verified.is_(True), User.notify.is_(True))))


@router.post("/broadcast")
async def broadcast(payload: schemas.BroadcastMessage, admin: AdminDep, db: DbDep):
    sent = failed = 0
    for user in _broadcast_recipients(db):
        try:
            await twilio_service.send_sms(user.phone_number, payload.message, from_number=user.preferred_number)
            sent += 1
        except LightfriendException as exc:
            failed += 1
            logger.warning("Broadcast SMS to user %s failed: %s", user.id, exc.message)
    log_audit_event("admin.broadcast.sms", user_id=admin.user_id, sent=sent, failed=failed)
    return {"message": "Broadcast completed", "sent": sent, "failed": failed}


@router.post("/broadcast-email")
def broadcast_email(payload: schemas.EmailBroadcastMessage, admin: AdminDep, db: DbDep):
    if not email_service.smtp_configured():
        raise ConfigurationError("SMTP_HOST")
    sent = failed = 0
    for user in _broadcast_recipients(db):
        if email_service.send_email(user.email, payload.subject, payload.message):
            sent += 1
        else:
            failed += 1
    log_audit_event("admin.broadcast.email", user_id=admin.user_id, sent=sent, failed=failed)
    return {"message": "Email broadcast completed", "sent": sent, "failed": failed}


@router.post("/test-sms", response_model=schemas.MessageOut)
async def test_sms(payload: schemas.BroadcastMessage, admin: AdminDep, db: DbDep):
    user = users.get_user_or_404(db, admin.user_id)
    sid = await twilio_service.send_sms(user.phone_number, payload.message, from_number=user.preferred_number)
    log_audit_event("admin.test_sms", user_id=admin.user_id, sid=sid)
    return schemas.MessageOut(message="Test SMS sent successfully")
