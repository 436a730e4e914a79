"""Service helpers and client guards that do not need the network."""
import asyncio

import httpx
import pytest

from lightfriend.core.config import settings
from lightfriend.core.exceptions import ConfigurationError, UpstreamServiceError
from lightfriend.core.logger import mask_phone_numbers
from lightfriend.core.monitoring import scrub_event
from lightfriend.services import email_service, perplexity_service, twilio_service, weather_service


@pytest.mark.parametrize(
    "code,expected",
    [(0, "clear sky"), (3, "overcast"), (95, "thunderstorm"), (7, "unknown conditions"), (None, "unknown conditions")],
)
def test_describe_weather_code(code, expected):
    assert weather_service.describe_weather_code(code) == expected


def test_perplexity_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "PERPLEXITY_API_KEY", None)
    with pytest.raises(ConfigurationError):
        asyncio.run(perplexity_service.ask_perplexity("hello"))


def test_twilio_requires_credentials(monkeypatch):
    monkeypatch.setattr(settings, "TWILIO_ACCOUNT_SID", None)
    monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", None)
    with pytest.raises(ConfigurationError):
        asyncio.run(twilio_service.send_sms("+15551234567", "hi"))


def test_twilio_requires_sender_number(monkeypatch):
    monkeypatch.setattr(settings, "TWILIO_DEFAULT_NUMBER", None)
    with pytest.raises(ConfigurationError) as excinfo:
        asyncio.run(twilio_service.send_sms("+15551234567", "hi", account_sid="AC1", auth_token="tok"))
    assert excinfo.value.details["parameter"] == "TWILIO_DEFAULT_NUMBER"


def test_email_not_sent_without_smtp(monkeypatch):
    monkeypatch.setattr(settings, "SMTP_HOST", None)
    assert email_service.smtp_configured() is False
    assert email_service.send_email("a@example.com", "s", "b") is False


def test_phone_numbers_are_masked_in_logs():
    assert mask_phone_numbers("SMS sent to +15551234567 (sid: SM1)") == "SMS sent to +***4567 (sid: SM1)"
    assert mask_phone_numbers("user 42 charged 0.15") == "user 42 charged 0.15"


def test_sentry_events_drop_credentials():
    event = {
        "request": {
            "headers": {"Authorization": "Bearer abc", "Accept": "application/json"},
            "data": {"account_sid": "AC123", "auth_token": "secret", "message": "hi"},
        }
    }
    scrubbed = scrub_event(event)
    assert scrubbed["request"]["headers"]["Authorization"] == "[Filtered]"
    assert scrubbed["request"]["headers"]["Accept"] == "application/json"
    assert scrubbed["request"]["data"]["auth_token"] == "[Filtered]"
    assert scrubbed["request"]["data"]["message"] == "hi"


_RealAsyncClient = httpx.AsyncClient


@pytest.fixture
def html_upstream(monkeypatch):
    """Every outbound request gets a 200 with an HTML body instead of JSON."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>Bad gateway</html>"))

    def _client(*args, **kwargs):
        kwargs["transport"] = transport
        return _RealAsyncClient(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", _client)


def test_weather_non_json_body_is_upstream_error(html_upstream):
    with pytest.raises(UpstreamServiceError) as excinfo:
        asyncio.run(weather_service.fetch_current_weather(60.17, 24.94))
    assert excinfo.value.details["service"] == "Weather"


def test_twilio_sms_non_json_body_is_upstream_error(html_upstream, monkeypatch):
    monkeypatch.setattr(settings, "TWILIO_DEFAULT_NUMBER", "+15550001111")
    with pytest.raises(UpstreamServiceError):
        asyncio.run(twilio_service.send_sms("+15551234567", "hi", account_sid="AC1", auth_token="tok"))


def test_twilio_country_lookup_non_json_body_is_upstream_error(html_upstream, monkeypatch):
    monkeypatch.setattr(settings, "TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "tok")
    with pytest.raises(UpstreamServiceError):
        asyncio.run(twilio_service.fetch_country_info("fi"))
