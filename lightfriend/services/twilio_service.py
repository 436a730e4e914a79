"""Twilio REST client: outbound SMS and per-country number/pricing lookups."""
from __future__ import annotations

import asyncio
import logging

import httpx

from lightfriend.core.config import settings
from lightfriend.core.exceptions import ConfigurationError, UpstreamServiceError

logger = logging.getLogger(__name__)

API_BASE = "https://api.twilio.com/2010-04-01"
PRICING_BASE = "https://pricing.twilio.com"
NUMBERS_BASE = "https://numbers.twilio.com/v2"


def _credentials(account_sid: str | None, auth_token: str | None) -> tuple[str, str]:
    sid = account_sid or settings.TWILIO_ACCOUNT_SID
    token = auth_token or settings.TWILIO_AUTH_TOKEN
    if not sid or not token:
        raise ConfigurationError("TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN")
    return sid, token


async def send_sms(
    to: str,
    body: str,
    *,
    from_number: str | None = None,
    account_sid: str | None = None,
    auth_token: str | None = None,
) -> str:
    """Send an SMS and return the Twilio message SID.

    Users with their own Twilio number pass their credentials; everyone else
    goes through the shared account.
    """
    sid, token = _credentials(account_sid, auth_token)
    sender = from_number or settings.TWILIO_DEFAULT_NUMBER
    if not sender:
        raise ConfigurationError("TWILIO_DEFAULT_NUMBER")

    url = f"{API_BASE}/Accounts/{sid}/Messages.json"
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(url, data={"From": sender, "To": to, "Body": body}, auth=(sid, token))
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as exc:
        logger.error("Twilio SMS to %s failed: %s", to, exc)
        raise UpstreamServiceError("Twilio", str(exc)) from exc
    except ValueError as exc:
        logger.error("Twilio SMS to %s returned a non-JSON body: %s", to, exc)
        raise UpstreamServiceError("Twilio", "invalid response body") from exc

    message_sid = data.get("sid", "")
    logger.info("Twilio SMS sent to %s (sid: %s)", to, message_sid)
    return message_sid


async def _get_json(client: httpx.AsyncClient, url: str, params: dict | None = None) -> dict:
    response = await client.get(url, params=params)
    # Countries without a number type answer 404
    if response.status_code == 404:
        return {}
    response.raise_for_status()
    return response.json()


async def fetch_country_info(country_code: str) -> dict:
    """
    Collect what a user needs to pick a Twilio number in ``country_code``:
      available_numbers   local and mobile numbers for sale
      prices              number, messaging and voice price lists
      regulations         local and mobile regulatory requirements
    """
    sid, token = _credentials(None, None)
    cc = country_code.upper()
    try:
        async with httpx.AsyncClient(timeout=30.0, auth=(sid, token)) as client:
            (
                locals_,
                mobiles,
                number_prices,
                messaging_prices,
                voice_prices,
                local_regs,
                mobile_regs,
            ) = await asyncio.gather(
                _get_json(client, f"{API_BASE}/Accounts/{sid}/AvailablePhoneNumbers/{cc}/Local.json"),
                _get_json(client, f"{API_BASE}/Accounts/{sid}/AvailablePhoneNumbers/{cc}/Mobile.json"),
                _get_json(client, f"{PRICING_BASE}/v1/PhoneNumbers/Countries/{cc}"),
                _get_json(client, f"{PRICING_BASE}/v1/Messaging/Countries/{cc}"),
                _get_json(client, f"{PRICING_BASE}/v2/Voice/Countries/{cc}"),
                _get_json(
                    client,
                    f"{NUMBERS_BASE}/RegulatoryCompliance/Regulations",
                    {"IsoCountry": cc, "NumberType": "local", "IncludeConstraints": "true"},
                ),
                _get_json(
                    client,
                    f"{NUMBERS_BASE}/RegulatoryCompliance/Regulations",
                    {"IsoCountry": cc, "NumberType": "mobile", "IncludeConstraints": "true"},
                ),
            )
    except httpx.HTTPError as exc:
        logger.error("Twilio country lookup for %s failed: %s", cc, exc)
        raise UpstreamServiceError("Twilio", str(exc)) from exc
    except ValueError as exc:
        logger.error("Twilio country lookup for %s returned a non-JSON body: %s", cc, exc)
        raise UpstreamServiceError("Twilio", "invalid response body") from exc

    return {
        "available_numbers": {
            "locals": locals_.get("available_phone_numbers", []),
            "mobiles": mobiles.get("available_phone_numbers", []),
        },
        "prices": {
            "phone_numbers": number_prices,
            "messaging": messaging_prices,
            "voice": voice_prices,
        },
        "regulations": {
            "local": local_regs.get("results", []),
            "mobile": mobile_regs.get("results", []),
        },
    }
