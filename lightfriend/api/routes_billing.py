import logging

from fastapi import APIRouter, Request

from lightfriend.api.dependencies import AdminDep, AuthUserDep, DbDep, require_self_or_admin
from lightfriend.api.rate_limit import RATE_LIMITS, limiter
from lightfriend.core.audit import log_audit_event
from lightfriend.models import schemas
from lightfriend.models.models import ActivityType
from lightfriend.services import credits, pricing, users

router = APIRouter()
logger = logging.getLogger(__name__)

ADMIN_CREDIT_INCREMENT = 1.00


@router.post("/billing/increase-credits/{user_id}", response_model=schemas.MessageOut)
def increase_credits(user_id: int, admin: AdminDep, db: DbDep):
    user = users.get_user_or_404(db, user_id)
    balance = credits.add_credits(
        db,
        user,
        ADMIN_CREDIT_INCREMENT,
        reason="admin increase",
        activity_type=ActivityType.CREDITS_ADJUSTMENT,
    )
    log_audit_event(
        "admin.credits.increase",
        user_id=admin.user_id,
        target_user_id=user_id,
        amount=ADMIN_CREDIT_INCREMENT,
        balance=balance,
    )
    return schemas.MessageOut(message="Credits increased successfully")


@router.post("/billing/reset-credits/{user_id}", response_model=schemas.MessageOut)
def reset_credits(user_id: int, admin: AdminDep, db: DbDep):
    user = users.get_user_or_404(db, user_id)
    credits.reset_credits(db, user)
    log_audit_event("admin.credits.reset", user_id=admin.user_id, target_user_id=user_id)
    return schemas.MessageOut(message="Credits reset successfully")


@router.post("/billing/update-auto-topup/{user_id}", response_model=schemas.AutoTopupSettings)
def update_auto_topup(user_id: int, payload: schemas.AutoTopupSettings, auth_user: AuthUserDep, db: DbDep):
    require_self_or_admin(user_id, auth_user)
    user = users.get_user_or_404(db, user_id)
    amount = credits.update_auto_topup(db, user, payload.active, payload.amount)
    log_audit_event(
        "billing.auto_topup",
        user_id=auth_user.user_id,
        target_user_id=user_id,
        active=payload.active,
        amount=amount,
    )
    return schemas.AutoTopupSettings(active=bool(user.charge_when_under), amount=amount)


@router.get("/pricing/{country}", response_model=schemas.PricingOut)
@limiter.limit(RATE_LIMITS["pricing"])
def get_pricing(request: Request, country: str):
    return pricing.get_pricing(country).as_dict()
