"""Pydantic schemas for API requests and responses.

Sub-modules:
- user: Profile, credit summary and bring-your-own-number schemas
- billing: Stripe, auto top-up, admin broadcast and pricing schemas
- tools: Assistant tool requests and answers
- vapi: Voice assistant webhook envelope
"""
from .billing import (
    AutoTopupSettings,
    BroadcastMessage,
    BuyCreditsRequest,
    CheckoutSessionOut,
    ConfirmCheckoutRequest,
    EmailBroadcastMessage,
    PortalSessionOut,
    PricingOut,
    UsageLogOut,
)
from .user import (
    CountryInfoIn,
    CreditSummaryOut,
    MessageOut,
    ProfileOut,
    TwilioCredsIn,
    TwilioPhoneIn,
    UsageEstimateOut,
    UserInfo,
)
from .tools import AskIn, DeliveryOut, SendEmailIn, SendMessageIn, ToolAnswerOut, WeatherOut
from .vapi import ToolCall, ToolFunction, VapiEnvelope, VapiMessage

__all__ = [
    "AutoTopupSettings", "BroadcastMessage", "BuyCreditsRequest", "CheckoutSessionOut",
    "ConfirmCheckoutRequest", "EmailBroadcastMessage", "PortalSessionOut", "PricingOut",
    "UsageLogOut", "CountryInfoIn", "CreditSummaryOut", "MessageOut", "ProfileOut",
    "TwilioCredsIn", "TwilioPhoneIn", "UsageEstimateOut", "UserInfo",
    "AskIn", "DeliveryOut", "SendEmailIn", "SendMessageIn", "ToolAnswerOut", "WeatherOut",
    "ToolCall", "ToolFunction", "VapiEnvelope", "VapiMessage",
]
