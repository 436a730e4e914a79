"""
Stripe checkout, customer portal and webhook fulfilment.

Checkout sessions carry ``metadata`` with the user id and what was bought:
- kind=credits: one-time payment, ``amount_total`` becomes purchased credits
- kind=subscription: recurring plan, ``tier`` is the SubTier value to apply

Fulfilment is idempotent per checkout session id, so the redirect
confirmation and the webhook can both arrive without double crediting.
"""
from __future__ import annotations

import logging
from typing import Any

import stripe
from sqlalchemy import select
from sqlalchemy.orm import Session

from lightfriend import metrics
from lightfriend.core.config import settings
from lightfriend.core.exceptions import (
    ConfigurationError,
    ForbiddenError,
    InvalidAmountError,
    InvalidPayloadError,
    InvalidTierError,
    PaymentError,
    UpstreamServiceError,
)
from lightfriend.models.models import SubTier, User, WebhookEvent
from lightfriend.services import credits

logger = logging.getLogger(__name__)

CURRENCY = "eur"
CHECKOUT_PROVIDER = "stripe:checkout"
EVENT_PROVIDER = "stripe:event"


def _field(obj: Any, name: str) -> Any:
    """Read a field from a Stripe object or a plain dict."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _configure() -> None:
    if not settings.STRIPE_SECRET_KEY:
        raise ConfigurationError("STRIPE_SECRET_KEY")
    stripe.api_key = settings.STRIPE_SECRET_KEY


def _price_for_tier(tier: SubTier) -> str:
    price_ids = {
        SubTier.TIER_1: ("STRIPE_HARD_MODE_PRICE_ID", settings.STRIPE_HARD_MODE_PRICE_ID),
        SubTier.TIER_2: ("STRIPE_SUBSCRIPTION_PRICE_ID", settings.STRIPE_SUBSCRIPTION_PRICE_ID),
    }
    if tier not in price_ids:
        raise InvalidTierError(tier.value, [SubTier.TIER_1.value, SubTier.TIER_2.value])
    name, price_id = price_ids[tier]
    if not price_id:
        raise ConfigurationError(name)
    return price_id


def _record_webhook(db: Session, provider: str, external_id: str, signature: str | None) -> bool:
    existing = db.scalar(
        select(WebhookEvent).where(WebhookEvent.provider == provider, WebhookEvent.external_id == external_id)
    )
    if existing:
        return True
    db.add(WebhookEvent(provider=provider, external_id=external_id, signature=signature))
    return False


def _return_url(path: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}"


def get_or_create_customer(db: Session, user: User) -> str:
    if user.stripe_customer_id:
        return user.stripe_customer_id
    _configure()
    try:
        customer = stripe.Customer.create(
            email=user.email,
            phone=user.phone_number,
            metadata={"user_id": str(user.id)},
        )
    except stripe.StripeError as exc:
        logger.error("Stripe customer creation failed for user %s: %s", user.id, exc)
        raise UpstreamServiceError("Stripe", str(exc)) from exc
    user.stripe_customer_id = customer.id
    db.commit()
    logger.info("Created Stripe customer %s for user %s", customer.id, user.id)
    return customer.id


def create_credits_checkout(db: Session, user: User, amount_dollars: float) -> dict:
    """One-time payment session buying ``amount_dollars`` of overage credits."""
    if amount_dollars < credits.MIN_TOPUP_AMOUNT_CREDITS:
        raise InvalidAmountError(amount_dollars, credits.MIN_TOPUP_AMOUNT_CREDITS)
    if not settings.STRIPE_CREDITS_PRODUCT_ID:
        raise ConfigurationError("STRIPE_CREDITS_PRODUCT_ID")
    customer_id = get_or_create_customer(db, user)
    try:
        session = stripe.checkout.Session.create(
            customer=customer_id,
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": CURRENCY,
                        "product": settings.STRIPE_CREDITS_PRODUCT_ID,
                        "unit_amount": int(round(amount_dollars * 100)),
                    },
                    "quantity": 1,
                }
            ],
            success_url=_return_url("/billing?success=true&session_id={CHECKOUT_SESSION_ID}"),
            cancel_url=_return_url("/billing?canceled=true"),
            metadata={"user_id": str(user.id), "kind": "credits", "amount": f"{amount_dollars:.2f}"},
        )
    except stripe.StripeError as exc:
        logger.error("Stripe checkout creation failed for user %s: %s", user.id, exc)
        raise UpstreamServiceError("Stripe", str(exc)) from exc
    metrics.checkout_session_created("credits")
    logger.info("Created credits checkout %s for user %s (%.2f)", session.id, user.id, amount_dollars)
    return {"url": session.url, "session_id": session.id}


def create_subscription_checkout(db: Session, user: User, tier: SubTier) -> dict:
    price_id = _price_for_tier(tier)
    customer_id = get_or_create_customer(db, user)
    metadata = {"user_id": str(user.id), "kind": "subscription", "tier": tier.value}
    try:
        session = stripe.checkout.Session.create(
            customer=customer_id,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=_return_url("/billing?success=true&session_id={CHECKOUT_SESSION_ID}"),
            cancel_url=_return_url("/billing?canceled=true"),
            metadata=metadata,
            subscription_data={"metadata": metadata},
        )
    except stripe.StripeError as exc:
        logger.error("Stripe subscription checkout failed for user %s: %s", user.id, exc)
        raise UpstreamServiceError("Stripe", str(exc)) from exc
    metrics.checkout_session_created(f"subscription:{tier.value}")
    logger.info("Created %s subscription checkout %s for user %s", tier.plan_name, session.id, user.id)
    return {"url": session.url, "session_id": session.id}


def create_portal_session(db: Session, user: User) -> str:
    customer_id = get_or_create_customer(db, user)
    try:
        session = stripe.billing_portal.Session.create(customer=customer_id, return_url=_return_url("/billing"))
    except stripe.StripeError as exc:
        logger.error("Stripe portal session failed for user %s: %s", user.id, exc)
        raise UpstreamServiceError("Stripe", str(exc)) from exc
    return session.url


def fulfil_checkout(db: Session, session: Any, signature: str | None = None) -> str:
    """
    Apply a paid checkout session to its user.

    Returns "applied", "duplicate" or "ignored".
    """
    session_id = _field(session, "id")
    metadata = _field(session, "metadata") or {}
    raw_user_id = _field(metadata, "user_id")
    kind = _field(metadata, "kind")
    if not session_id or not raw_user_id:
        logger.warning("Checkout session %s has no user metadata", session_id)
        return "ignored"
    if _field(session, "payment_status") not in ("paid", "no_payment_required"):
        logger.info("Checkout session %s not paid yet", session_id)
        return "ignored"

    try:
        user = db.get(User, int(raw_user_id))
    except ValueError:
        logger.warning("Checkout session %s has a malformed user id %r", session_id, raw_user_id)
        return "ignored"
    if user is None:
        logger.warning("Checkout session %s references unknown user %s", session_id, raw_user_id)
        return "ignored"

    if _record_webhook(db, CHECKOUT_PROVIDER, session_id, signature):
        logger.info("Checkout session %s already fulfilled", session_id)
        return "duplicate"

    customer_id = _field(session, "customer")
    if customer_id and not user.stripe_customer_id:
        user.stripe_customer_id = customer_id

    if kind == "credits":
        amount_total = _field(session, "amount_total") or 0
        credits.add_credits(db, user, amount_total / 100, reason="stripe checkout", sid=session_id)
    elif kind == "subscription":
        tier = SubTier.parse(_field(metadata, "tier"))
        if tier is None:
            db.commit()
            logger.warning("Checkout session %s has an unknown tier", session_id)
            return "ignored"
        credits.apply_subscription(db, user, tier)
    else:
        db.commit()
        logger.warning("Checkout session %s has unknown kind %s", session_id, kind)
        return "ignored"
    logger.info("Fulfilled %s checkout %s for user %s", kind, session_id, user.id)
    return "applied"


def confirm_checkout(db: Session, user_id: int, session_id: str) -> str:
    """Fulfil a checkout after the browser redirect, checking ownership and payment."""
    _configure()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as exc:
        logger.error("Stripe checkout retrieval failed for %s: %s", session_id, exc)
        raise UpstreamServiceError("Stripe", str(exc)) from exc

    owner = _field(_field(session, "metadata") or {}, "user_id")
    if not owner or str(owner).strip() != str(user_id):
        raise ForbiddenError("This checkout session does not belong to you")
    if _field(session, "payment_status") != "paid":
        raise PaymentError("Checkout session is not paid", details={"session_id": session_id})
    return fulfil_checkout(db, session)


def construct_event(payload: bytes, signature: str | None) -> Any:
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise ConfigurationError("STRIPE_WEBHOOK_SECRET")
    try:
        return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except ValueError as exc:
        raise InvalidPayloadError("Invalid webhook payload") from exc
    except stripe.SignatureVerificationError as exc:
        raise PaymentError("Invalid signature") from exc


def _user_for_customer(db: Session, customer_id: str | None) -> User | None:
    if not customer_id:
        return None
    return db.scalar(select(User).where(User.stripe_customer_id == customer_id))


def _tier_for_invoice(invoice: Any) -> SubTier | None:
    lines = _field(_field(invoice, "lines"), "data") or []
    for line in lines:
        price_id = _field(_field(line, "price"), "id")
        if price_id and price_id == settings.STRIPE_SUBSCRIPTION_PRICE_ID:
            return SubTier.TIER_2
        if price_id and price_id == settings.STRIPE_HARD_MODE_PRICE_ID:
            return SubTier.TIER_1
    return None


def handle_event(db: Session, event: Any, signature: str | None = None) -> dict:
    event_id = event["id"]
    event_type = event["type"]
    obj = event["data"]["object"]

    if _record_webhook(db, EVENT_PROVIDER, event_id, signature):
        logger.info("Stripe webhook duplicate for %s", event_id)
        metrics.stripe_webhook(event_type, "duplicate")
        return {"status": "duplicate", "event": event_type}

    match event_type:
        case "checkout.session.completed":
            status = fulfil_checkout(db, obj, signature)
        case "customer.subscription.deleted":
            user = _user_for_customer(db, _field(obj, "customer"))
            if user is None:
                status = "ignored"
            else:
                credits.clear_subscription(db, user)
                logger.info("Subscription cancelled for user %s", user.id)
                status = "applied"
        case "invoice.paid":
            user = _user_for_customer(db, _field(obj, "customer"))
            tier = _tier_for_invoice(obj) or (user.sub_tier if user else None)
            if user is None or tier is None:
                status = "ignored"
            else:
                credits.apply_subscription(db, user, tier)
                status = "applied"
        case _:
            status = "ignored"

    db.commit()
    metrics.stripe_webhook(event_type, status)
    logger.info("Stripe webhook %s (%s): %s", event_id, event_type, status)
    return {"status": status, "event": event_type}
