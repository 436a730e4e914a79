"""
Voice assistant webhook dispatcher.

The provider posts every call event to one URL; ``dispatch`` routes on
``message.type``:

- assistant-request: pick the assistant and personalise its greeting
- status-update: acknowledged, nothing stored
- tool-calls: run each requested function and return one result per call
- anything else: error payload

No branch raises to the caller; the provider only ever sees a JSON body.
"""
from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lightfriend import metrics
from lightfriend.core.config import settings
from lightfriend.core.exceptions import LightfriendException
from lightfriend.models.models import User
from lightfriend.models.schemas.vapi import ToolCall, VapiEnvelope
from lightfriend.services import perplexity_service

logger = logging.getLogger(__name__)

DEFAULT_FIRST_MESSAGE = "Hello! {{name}}"
DEFAULT_NAME_VARIABLE = "nickname"


def _error(message: str) -> dict[str, Any]:
    return {"status": "error", "message": message, "data": None}


def assistant_response(nickname: str | None = None) -> dict[str, Any]:
    if nickname:
        first_message = f"Hello! {nickname}"
        name = nickname
    else:
        first_message = DEFAULT_FIRST_MESSAGE
        name = DEFAULT_NAME_VARIABLE
    return {
        "messageResponse": {
            "assistantId": settings.VAPI_ASSISTANT_ID,
            "assistantOverrides": {
                "firstMessage": first_message,
                "variableValues": {"name": name},
            },
        }
    }


def handle_assistant_request(db: Session, envelope: VapiEnvelope) -> dict[str, Any]:
    phone_number = envelope.phone_number
    if not phone_number:
        logger.info("Assistant request without a caller number, using default greeting")
        return assistant_response()
    try:
        user = db.scalar(select(User).where(User.phone_number == phone_number))
    except SQLAlchemyError as exc:
        logger.error("User lookup failed for caller %s: %s", phone_number, exc)
        return assistant_response()
    if user is None:
        logger.info("No user found for caller %s", phone_number)
        return assistant_response()
    return assistant_response(user.nickname)


def handle_status_update(envelope: VapiEnvelope) -> dict[str, Any]:
    call_id = envelope.message.call.id if envelope.message.call else None
    logger.debug("Status update for call %s: %s", call_id, envelope.message.status)
    return {"status": "success", "message": "Status update received", "data": None}


async def _run_tool_call(tool_call: ToolCall) -> dict[str, Any]:
    name = tool_call.function.name
    arguments = tool_call.function.arguments
    match name:
        case "perplexity-ask":
            message = arguments.get("message")
            if not isinstance(message, str) or not message:
                metrics.tool_call(name, ok=False)
                return {"toolCallId": tool_call.id, "result": "No question was provided."}
            try:
                answer = await perplexity_service.ask_perplexity(message)
            except LightfriendException as exc:
                logger.error("Perplexity tool call %s failed: %s", tool_call.id, exc.message)
                metrics.tool_call(name, ok=False)
                return {"toolCallId": tool_call.id, "result": "Sorry, I couldn't look that up right now."}
            metrics.tool_call(name, ok=True)
            return {"toolCallId": tool_call.id, "result": answer}
        case "system-command":
            logger.info("Received system command %s: %s", tool_call.id, arguments)
            metrics.tool_call(name, ok=True)
            return {"toolCallId": tool_call.id, "result": "Acknowledged."}
        case _:
            logger.warning("Unknown function type: %s", name)
            metrics.tool_call("unknown", ok=False)
            return {"toolCallId": tool_call.id, "result": f"Unknown function: {name}"}


async def handle_tool_calls(envelope: VapiEnvelope) -> dict[str, Any]:
    results = [await _run_tool_call(tool_call) for tool_call in envelope.tool_calls]
    return {"results": results}


def parse_envelope(payload: Any) -> VapiEnvelope:
    return VapiEnvelope.model_validate(payload)


async def dispatch(db: Session, payload: Any) -> dict[str, Any]:
    try:
        envelope = parse_envelope(payload)
    except ValidationError as exc:
        logger.warning("Error parsing voice webhook payload: %s", exc.errors(include_url=False))
        metrics.vapi_parse_error()
        return _error("Error parsing payload")

    request_type = envelope.request_type
    metrics.vapi_event(request_type)
    logger.info("Voice webhook %s from %s", request_type, envelope.phone_number)

    match request_type:
        case "assistant-request":
            return handle_assistant_request(db, envelope)
        case "status-update":
            return handle_status_update(envelope)
        case "tool-calls":
            return await handle_tool_calls(envelope)
        case _:
            return _error("Unknown request type")
