import logging

from fastapi import APIRouter, Request

from lightfriend.api.dependencies import AuthUserDep, CurrentUserDep, DbDep, require_self_or_admin
from lightfriend.api.rate_limit import RATE_LIMITS, limiter
from lightfriend.core.audit import log_audit_event, log_failure
from lightfriend.core.exceptions import InvalidPayloadError, PaymentError
from lightfriend.models import schemas
from lightfriend.models.models import SubTier
from lightfriend.services import stripe_service, users

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/checkout-session/{user_id}", response_model=schemas.CheckoutSessionOut)
@limiter.limit(RATE_LIMITS["stripe_checkout"])
def create_checkout_session(
    request: Request,
    user_id: int,
    payload: schemas.BuyCreditsRequest,
    auth_user: AuthUserDep,
    db: DbDep,
):
    """One-time checkout for overage credits."""
    require_self_or_admin(user_id, auth_user)
    user = users.get_user_or_404(db, user_id)
    return stripe_service.create_credits_checkout(db, user, payload.amount_dollars)


@router.post("/subscription-checkout/{user_id}", response_model=schemas.CheckoutSessionOut)
@limiter.limit(RATE_LIMITS["stripe_checkout"])
def create_subscription_checkout(request: Request, user_id: int, auth_user: AuthUserDep, db: DbDep):
    """Escape plan ("tier 2") subscription checkout."""
    require_self_or_admin(user_id, auth_user)
    user = users.get_user_or_404(db, user_id)
    return stripe_service.create_subscription_checkout(db, user, SubTier.TIER_2)


@router.post("/hard-mode-subscription-checkout/{user_id}", response_model=schemas.CheckoutSessionOut)
@limiter.limit(RATE_LIMITS["stripe_checkout"])
def create_hard_mode_subscription_checkout(request: Request, user_id: int, auth_user: AuthUserDep, db: DbDep):
    """Basic plan ("tier 1") subscription checkout."""
    require_self_or_admin(user_id, auth_user)
    user = users.get_user_or_404(db, user_id)
    return stripe_service.create_subscription_checkout(db, user, SubTier.TIER_1)


@router.post("/confirm-checkout")
def confirm_checkout(payload: schemas.ConfirmCheckoutRequest, current_user_id: CurrentUserDep, db: DbDep):
    status = stripe_service.confirm_checkout(db, current_user_id, payload.session_id)
    log_audit_event("billing.checkout.confirm", user_id=current_user_id, session_id=payload.session_id, result=status)
    return {"status": status, "session_id": payload.session_id}


@router.get("/customer-portal/{user_id}", response_model=schemas.PortalSessionOut)
def customer_portal(user_id: int, auth_user: AuthUserDep, db: DbDep):
    require_self_or_admin(user_id, auth_user)
    user = users.get_user_or_404(db, user_id)
    return schemas.PortalSessionOut(url=stripe_service.create_portal_session(db, user))


@router.post("/webhook")
@limiter.limit(RATE_LIMITS["stripe_webhook"])
async def stripe_webhook(request: Request, db: DbDep):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = stripe_service.construct_event(payload, signature)
    except (InvalidPayloadError, PaymentError) as exc:
        log_failure("billing.stripe.webhook", user_id=None, error=exc.message)
        raise
    return stripe_service.handle_event(db, event, signature)
