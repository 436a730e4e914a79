"""User, profile and credit summary schemas."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UsageEstimateOut(BaseModel):
    balance: float
    minutes: int
    seconds: int
    messages: int


class CreditSummaryOut(BaseModel):
    purchased: UsageEstimateOut
    monthly: UsageEstimateOut
    msgs_left: int


class UserInfo(BaseModel):
    """Row shape used by the admin users table."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    phone_number: str
    nickname: str | None = None
    time_to_live: int | None = None
    verified: bool
    credits: float
    notify: bool
    preferred_number: str | None = None
    sub_tier: str | None = None
    msgs_left: int
    credits_left: float
    discount: bool
    discount_tier: str | None = None
    is_admin: bool = False


class ProfileOut(UserInfo):
    charge_when_under: bool = False
    charge_back_to: float | None = None
    twilio_phone: str | None = None
    plan_name: str | None = None
    credit_summary: CreditSummaryOut


class TwilioPhoneIn(BaseModel):
    twilio_phone: str = Field(..., min_length=8, max_length=20)

    @field_validator("twilio_phone")
    @classmethod
    def _e164(cls, value: str) -> str:
        cleaned = value.replace(" ", "").replace("-", "")
        if not cleaned.startswith("+") or not cleaned[1:].isdigit():
            raise ValueError("Phone number must be in E.164 format, e.g. +15551234567")
        return cleaned


class TwilioCredsIn(BaseModel):
    account_sid: str
    auth_token: str

    @field_validator("account_sid")
    @classmethod
    def _sid(cls, value: str) -> str:
        value = value.strip()
        if not (value.startswith("AC") and len(value) == 34):
            raise ValueError("Account SID must start with 'AC' and be 34 characters long")
        return value

    @field_validator("auth_token")
    @classmethod
    def _token(cls, value: str) -> str:
        value = value.strip()
        if len(value) != 32 or any(c not in "0123456789abcdefABCDEF" for c in value):
            raise ValueError("Auth token must be 32 hexadecimal characters")
        return value


class CountryInfoIn(BaseModel):
    country_code: str = Field(..., min_length=2, max_length=2, pattern=r"^[A-Za-z]{2}$")


class MessageOut(BaseModel):
    message: str
