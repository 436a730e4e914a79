"""Request/response schemas for the assistant tools under /api/call."""
from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class AskIn(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)


class ToolAnswerOut(BaseModel):
    answer: str
    credits_charged: float


class WeatherOut(BaseModel):
    temperature_c: float | None = None
    wind_speed: float | None = None
    humidity_pct: float | None = None
    conditions: str
    summary: str
    credits_charged: float


class SendMessageIn(BaseModel):
    message: str = Field(..., min_length=1, max_length=1600)
    # Defaults to the caller's own phone number
    to: str | None = Field(default=None, pattern=r"^\+[1-9]\d{6,14}$")


class SendEmailIn(BaseModel):
    to: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1)


class DeliveryOut(BaseModel):
    status: str
    sid: str | None = None
    credits_charged: float
