from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from lightfriend.db.base_class import Base


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class SubTier(str, enum.Enum):
    """Subscription tiers. ``None`` on the user row means no subscription."""
    TIER_0 = "tier 0"
    TIER_1 = "tier 1"
    TIER_2 = "tier 2"

    @classmethod
    def parse(cls, value: SubTier | str | None) -> SubTier | None:
        """Normalise a stored or user supplied value; unknown strings map to None."""
        if value is None or isinstance(value, SubTier):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def plan_name(self) -> str:
        names = {
            SubTier.TIER_0: "Legacy",
            SubTier.TIER_1: "Basic Plan",
            SubTier.TIER_2: "Escape Plan",
        }
        return names[self]


class DiscountTier(str, enum.Enum):
    """Legacy discount ladder: none < msg < voice < full."""
    MSG = "msg"
    VOICE = "voice"
    FULL = "full"

    @classmethod
    def parse(cls, value: DiscountTier | str | None) -> DiscountTier | None:
        if value is None or isinstance(value, DiscountTier):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def rank(self) -> int:
        ranks = {
            DiscountTier.MSG: 1,
            DiscountTier.VOICE: 2,
            DiscountTier.FULL: 3,
        }
        return ranks[self]


def discount_rank(tier: DiscountTier | None) -> int:
    return 0 if tier is None else tier.rank


def next_discount_tier(current: DiscountTier | None) -> DiscountTier | None:
    """Cycle none -> msg -> voice -> full -> none."""
    match current:
        case None:
            return DiscountTier.MSG
        case DiscountTier.MSG:
            return DiscountTier.VOICE
        case DiscountTier.VOICE:
            return DiscountTier.FULL
        case DiscountTier.FULL:
            return None


class Tool(str, enum.Enum):
    """Assistant tools reachable under /api/call/{tool}."""
    PERPLEXITY = "perplexity"
    WEATHER = "weather"
    ASSISTANT = "assistant"
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    CALENDAR = "calendar"
    SHAZAM = "shazam"

    @classmethod
    def parse(cls, value: str) -> Tool | None:
        try:
            return cls(value)
        except ValueError:
            return None


class ActivityType(str, enum.Enum):
    SMS = "sms"
    CALL = "call"
    TOOL = "tool"
    CREDITS_PURCHASE = "credits_purchase"
    CREDITS_ADJUSTMENT = "credits_adjustment"


class User(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    phone_number: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    nickname: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    # Subscription and legacy discount are independent access axes
    sub_tier: Mapped[SubTier | None] = mapped_column(
        Enum(SubTier, values_callable=_enum_values, native_enum=False, length=16),
        nullable=True,
    )
    discount: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    discount_tier: Mapped[DiscountTier | None] = mapped_column(
        Enum(DiscountTier, values_callable=_enum_values, native_enum=False, length=16),
        nullable=True,
    )
    # Purchased overage credits, never expire
    credits: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    # Monthly quota remaining, reset on renewal
    credits_left: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    # Proactive notification quota
    msgs_left: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    notify: Mapped[bool] = mapped_column(Boolean, default=True, server_default="1")
    preferred_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    # Plan expiry, epoch seconds
    time_to_live: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Auto top-up
    charge_when_under: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    charge_back_to: Mapped[float | None] = mapped_column(Float, nullable=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    # Bring-your-own Twilio number
    twilio_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    twilio_sid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    twilio_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    usage_logs: Mapped[list[UsageLog]] = relationship(
        "UsageLog",
        back_populates="user",
        cascade="all, delete-orphan",
    )  # type: ignore


class UsageLog(Base):
    """Append-only record of one billable action."""

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), index=True)
    activity_type: Mapped[str] = mapped_column(String(32), index=True)
    timestamp: Mapped[int] = mapped_column(Integer, index=True)
    sid: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    success: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    credits: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_consumed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recharge_threshold_timestamp: Mapped[int | None] = mapped_column(Integer, nullable=True)
    zero_credits_timestamp: Mapped[int | None] = mapped_column(Integer, nullable=True)

    user: Mapped[User] = relationship("User", back_populates="usage_logs")  # type: ignore


class WebhookEvent(Base):
    __table_args__ = (
        UniqueConstraint("provider", "external_id", name="uq_webhookevent_provider_external_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    provider: Mapped[str] = mapped_column(String(40), index=True)
    external_id: Mapped[str] = mapped_column(String(255))
    signature: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )
