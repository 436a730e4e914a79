import json
import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import ValidationError

from lightfriend.api.dependencies import DbDep
from lightfriend.api.rate_limit import RATE_LIMITS, limiter
from lightfriend.services import vapi_service

router = APIRouter()
logger = logging.getLogger(__name__)


async def _read_json(request: Request) -> Any:
    """Request body as JSON, or None when it is not valid JSON."""
    body = await request.body()
    try:
        return json.loads(body) if body else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


@router.post("/server")
@limiter.limit(RATE_LIMITS["vapi_debug"])
async def vapi_server(request: Request):
    """Echo the received payload back (provider connectivity check)."""
    payload = await _read_json(request)
    logger.info("Voice server payload received: %s", payload)
    return payload


@router.post("/phone-call-event/print")
@limiter.limit(RATE_LIMITS["vapi_debug"])
async def phone_call_event_print(request: Request):
    payload = await _read_json(request)
    try:
        envelope = vapi_service.parse_envelope(payload)
    except ValidationError as exc:
        logger.warning("Error parsing payload: %s", exc.errors(include_url=False))
        return {
            "status": "error",
            "message": "Invalid payload format",
            "error": str(exc),
        }

    logger.info("Received call from %s, request type %s", envelope.phone_number, envelope.request_type)
    for tool_call in envelope.tool_calls:
        logger.info("Tool call %s: %s(%s)", tool_call.id, tool_call.function.name, tool_call.function.arguments)
    return {
        "status": "success",
        "message": "Phone number and request type extracted successfully",
        "phone_number": envelope.phone_number,
        "request_type": envelope.request_type,
    }


@router.post("/phone-call-event")
@limiter.limit(RATE_LIMITS["vapi_event"])
async def phone_call_event(request: Request, db: DbDep):
    payload = await _read_json(request)
    return await vapi_service.dispatch(db, payload)
