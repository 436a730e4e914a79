"""Assistant tools under /api/call/{tool}.

Every route is gated by ``check_subscription_access`` and charges one message
worth of credits after the upstream call succeeded.
"""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from lightfriend import metrics
from lightfriend.api.dependencies import DbDep
from lightfriend.api.rate_limit import RATE_LIMITS, limiter
from lightfriend.core.exceptions import UpstreamServiceError
from lightfriend.models import schemas
from lightfriend.models.models import ActivityType, User
from lightfriend.services import credits, email_service, perplexity_service, twilio_service, weather_service
from lightfriend.utils.access_gate import check_subscription_access

router = APIRouter()
logger = logging.getLogger(__name__)

GatedUserDep = Annotated[User, Depends(check_subscription_access)]


def _charge(db: Session, user: User, tool: str, sid: str | None = None) -> float:
    credits.charge_usage(db, user, ActivityType.TOOL, credits.MESSAGE_COST, sid=sid, reason=tool)
    metrics.tool_call(tool, ok=True)
    return credits.MESSAGE_COST


@router.post("/perplexity/ask", response_model=schemas.ToolAnswerOut)
@limiter.limit(RATE_LIMITS["tool_call"])
async def perplexity_ask(request: Request, payload: schemas.AskIn, user: GatedUserDep, db: DbDep):
    credits.ensure_credits(user, credits.MESSAGE_COST)
    answer = await perplexity_service.ask_perplexity(payload.message)
    charged = _charge(db, user, "perplexity")
    return schemas.ToolAnswerOut(answer=answer, credits_charged=charged)


@router.get("/weather", response_model=schemas.WeatherOut)
@limiter.limit(RATE_LIMITS["tool_call"])
async def weather(
    request: Request,
    user: GatedUserDep,
    db: DbDep,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
):
    credits.ensure_credits(user, credits.MESSAGE_COST)
    result = await weather_service.fetch_current_weather(lat, lng)
    charged = _charge(db, user, "weather")
    return schemas.WeatherOut(**result, credits_charged=charged)


@router.post("/assistant/ask", response_model=schemas.ToolAnswerOut)
@limiter.limit(RATE_LIMITS["tool_call"])
async def assistant_ask(request: Request, payload: schemas.AskIn, user: GatedUserDep, db: DbDep):
    credits.ensure_credits(user, credits.MESSAGE_COST)
    answer = await perplexity_service.ask_perplexity(
        payload.message, system_prompt=perplexity_service.ASSISTANT_SYSTEM_PROMPT
    )
    charged = _charge(db, user, "assistant")
    return schemas.ToolAnswerOut(answer=answer, credits_charged=charged)


@router.post("/whatsapp/send", response_model=schemas.DeliveryOut)
@limiter.limit(RATE_LIMITS["tool_call"])
async def whatsapp_send(request: Request, payload: schemas.SendMessageIn, user: GatedUserDep, db: DbDep):
    credits.ensure_credits(user, credits.MESSAGE_COST)
    own_number = bool(user.twilio_phone and user.twilio_sid and user.twilio_token)
    sid = await twilio_service.send_sms(
        payload.to or user.phone_number,
        payload.message,
        from_number=user.twilio_phone if own_number else user.preferred_number,
        account_sid=user.twilio_sid if own_number else None,
        auth_token=user.twilio_token if own_number else None,
    )
    charged = _charge(db, user, "whatsapp", sid=sid)
    return schemas.DeliveryOut(status="sent", sid=sid, credits_charged=charged)


@router.post("/email/send", response_model=schemas.DeliveryOut)
@limiter.limit(RATE_LIMITS["tool_call"])
def email_send(request: Request, payload: schemas.SendEmailIn, user: GatedUserDep, db: DbDep):
    credits.ensure_credits(user, credits.MESSAGE_COST)
    if not email_service.send_email(str(payload.to), payload.subject, payload.body):
        metrics.tool_call("email", ok=False)
        raise UpstreamServiceError("Email", "delivery failed")
    charged = _charge(db, user, "email")
    return schemas.DeliveryOut(status="sent", credits_charged=charged)
