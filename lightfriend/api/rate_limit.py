import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from lightfriend import metrics
from lightfriend.core.config import settings

logger = logging.getLogger(__name__)


def _create_storage_uri() -> str:
    """
    Storage for SlowAPI/limits counters.

    In-memory outside production; Redis (via the ``redis`` client that limits
    loads for ``redis://`` and ``rediss://`` URIs) in production.
    """
    if settings.ENV.lower() != "prod":
        logger.info("Rate limiter using in-memory storage (dev/test mode)")
        return "memory://"
    if not settings.REDIS_URL:
        logger.warning("REDIS_URL not set in production, rate limiter falls back to memory")
        return "memory://"
    return settings.REDIS_URL


limiter = Limiter(key_func=get_remote_address, storage_uri=_create_storage_uri())

RATE_LIMITS = {
    # Voice provider webhooks
    "vapi_event": "300/minute",
    "vapi_debug": "60/minute",
    # Stripe
    "stripe_webhook": "120/minute",
    "stripe_checkout": "20/minute",
    # Assistant tools
    "tool_call": "60/minute",
    # Public lookups
    "pricing": "120/minute",
    "country_info": "20/minute",
}


def increment_rate_limit_exceeded() -> None:
    metrics.rate_limit_exceeded()
