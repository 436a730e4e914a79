"""User lookups and serialisation shared by the profile and admin routes."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from lightfriend.core.exceptions import UserNotFoundError
from lightfriend.models.models import User
from lightfriend.services import credits

logger = logging.getLogger(__name__)


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.id)))


# Never leave the service, not even to admins
PRIVATE_FIELDS = frozenset({"twilio_sid", "twilio_token", "stripe_customer_id"})
# Only shown on the user's own profile
PROFILE_FIELDS = frozenset({"charge_when_under", "charge_back_to", "twilio_phone", "created_at"})


def user_info(user: User) -> dict[str, Any]:
    return user.dict(exclude=PRIVATE_FIELDS | PROFILE_FIELDS)


def profile(user: User) -> dict[str, Any]:
    return {
        **user_info(user),
        "charge_when_under": bool(user.charge_when_under),
        "charge_back_to": user.charge_back_to,
        "twilio_phone": user.twilio_phone,
        "plan_name": user.sub_tier.plan_name if user.sub_tier else None,
        "credit_summary": credits.credit_summary(user),
    }


def delete_user(db: Session, user: User) -> None:
    """Delete the user; usage logs go with it."""
    user_id = user.id
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user_id)
