"""Perplexity chat completions client used by the search and assistant tools."""
from __future__ import annotations

import logging

import httpx

from lightfriend.core.config import settings
from lightfriend.core.exceptions import ConfigurationError, UpstreamServiceError

logger = logging.getLogger(__name__)

SEARCH_SYSTEM_PROMPT = "Be precise and concise."
ASSISTANT_SYSTEM_PROMPT = (
    "You are Lightfriend, a friendly assistant reached over a plain phone call or SMS. "
    "Answer in at most three short sentences without markdown, links or lists."
)


def _extract_answer(data: dict) -> str:
    try:
        return data["choices"][0]["message"]["content"].strip()
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""


async def ask_perplexity(message: str, system_prompt: str = SEARCH_SYSTEM_PROMPT) -> str:
    """Send ``message`` to Perplexity and return the answer text.

    Raises:
        ConfigurationError: PERPLEXITY_API_KEY is not set
        UpstreamServiceError: the request failed or returned a non-2xx status
    """
    if not settings.PERPLEXITY_API_KEY:
        raise ConfigurationError("PERPLEXITY_API_KEY")

    payload = {
        "model": settings.PERPLEXITY_MODEL,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": message},
        ],
    }
    headers = {
        "accept": "application/json",
        "content-type": "application/json",
        "Authorization": f"Bearer {settings.PERPLEXITY_API_KEY}",
    }
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(settings.PERPLEXITY_URL, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as exc:
        logger.error("Perplexity request failed: %s", exc)
        raise UpstreamServiceError("Perplexity", str(exc)) from exc
    except ValueError as exc:
        logger.error("Perplexity returned a non-JSON body: %s", exc)
        raise UpstreamServiceError("Perplexity", "invalid response body") from exc

    answer = _extract_answer(data)
    logger.info("Perplexity answered %d chars for a %d char question", len(answer), len(message))
    return answer
