"""Sentry error reporting, enabled only when ``SENTRY_DSN`` is set."""
from __future__ import annotations

import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from lightfriend.core.config import settings

logger = logging.getLogger(__name__)

_SCRUBBED_HEADERS = {"authorization", "stripe-signature", "cookie"}
_SCRUBBED_FIELDS = {"auth_token", "account_sid", "twilio_token", "twilio_sid"}

_initialized = False


def scrub_event(event: dict[str, Any], hint: dict[str, Any] | None = None) -> dict[str, Any]:
    """Drop bearer tokens, webhook signatures and Twilio credentials from an event."""
    request = event.get("request") or {}
    headers = request.get("headers")
    if isinstance(headers, dict):
        for key in list(headers):
            if key.lower() in _SCRUBBED_HEADERS:
                headers[key] = "[Filtered]"
    data = request.get("data")
    if isinstance(data, dict):
        for key in list(data):
            if key in _SCRUBBED_FIELDS:
                data[key] = "[Filtered]"
    return event


def init_monitoring() -> None:
    global _initialized
    if _initialized or not settings.SENTRY_DSN:
        return
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[FastApiIntegration()],
        traces_sample_rate=0.1,
        environment=settings.ENV,
        release=f"lightfriend-backend@{settings.ENV}",
        send_default_pii=False,
        before_send=scrub_event,
    )
    sentry_sdk.set_tag("service", settings.APP_NAME)
    logger.info("Sentry enabled for %s", settings.ENV)
    _initialized = True
