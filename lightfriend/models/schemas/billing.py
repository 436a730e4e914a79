"""Billing, Stripe and admin request/response schemas."""
from __future__ import annotations

from pydantic import BaseModel, Field


class AutoTopupSettings(BaseModel):
    active: bool
    amount: float | None = None


class BuyCreditsRequest(BaseModel):
    amount_dollars: float = Field(..., gt=0)


class ConfirmCheckoutRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class CheckoutSessionOut(BaseModel):
    url: str
    session_id: str


class PortalSessionOut(BaseModel):
    url: str


class BroadcastMessage(BaseModel):
    message: str = Field(..., min_length=1, max_length=1600)


class EmailBroadcastMessage(BaseModel):
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)


class UsageLogOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    user_id: int
    activity_type: str
    timestamp: int
    sid: str | None = None
    status: str | None = None
    success: bool | None = None
    credits: float | None = None
    time_consumed: int | None = None
    reason: str | None = None
    recharge_threshold_timestamp: int | None = None
    zero_credits_timestamp: int | None = None


class PricingOut(BaseModel):
    country: str
    currency: str
    basic_price: float
    premium_price: float
    basic_limit: int
    escape_limit: int
    limit_period: str
    message_overage: float
    voice_overage_per_minute: float
