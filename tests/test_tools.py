"""Tests for the gated assistant tools and their credit charging."""
import pytest
from sqlalchemy import select

from lightfriend.models.models import SubTier, UsageLog, User
from lightfriend.services import credits, email_service, perplexity_service, twilio_service, weather_service


@pytest.fixture
def fake_weather(monkeypatch):
    async def _fetch(lat: float, lng: float) -> dict:
        return {
            "temperature_c": 4.5,
            "wind_speed": 3.2,
            "humidity_pct": 81,
            "conditions": "Overcast",
            "summary": "Overcast, 4.5°C",
        }

    monkeypatch.setattr(weather_service, "fetch_current_weather", _fetch)


@pytest.fixture
def sent_sms(monkeypatch):
    sent: list[dict] = []

    async def _send(to, body, **kwargs):
        sent.append({"to": to, "body": body, **kwargs})
        return "SM42"

    monkeypatch.setattr(twilio_service, "send_sms", _send)
    return sent


def test_weather_charges_one_message(client, headers_for, db_session, make_user, fake_weather):
    user = make_user(sub_tier=SubTier.TIER_1, credits_left=1.0)
    resp = client.get(
        f"/api/call/weather?user_id={user.id}&lat=60.17&lng=24.94", headers=headers_for(user.id)
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["conditions"] == "Overcast"
    assert body["credits_charged"] == pytest.approx(credits.MESSAGE_COST)
    db_session.expire_all()
    assert db_session.get(User, user.id).credits_left == pytest.approx(1.0 - credits.MESSAGE_COST)
    log = db_session.scalar(select(UsageLog).where(UsageLog.user_id == user.id))
    assert log.activity_type == "tool"
    assert log.reason == "weather"


def test_weather_rejects_out_of_range_coordinates(client, headers_for, make_user, fake_weather):
    user = make_user(sub_tier=SubTier.TIER_1, credits_left=1.0)
    resp = client.get(f"/api/call/weather?user_id={user.id}&lat=123&lng=0", headers=headers_for(user.id))
    assert resp.status_code == 422


def test_assistant_uses_assistant_prompt(client, headers_for, make_user, monkeypatch):
    prompts: list[str] = []

    async def _ask(message: str, system_prompt: str = perplexity_service.SEARCH_SYSTEM_PROMPT) -> str:
        prompts.append(system_prompt)
        return "Sure."

    monkeypatch.setattr(perplexity_service, "ask_perplexity", _ask)
    user = make_user(sub_tier=SubTier.TIER_1, credits=1.0)
    resp = client.post(
        f"/api/call/assistant/ask?user_id={user.id}",
        headers=headers_for(user.id),
        json={"message": "remind me"},
    )
    assert resp.status_code == 200, resp.text
    assert prompts == [perplexity_service.ASSISTANT_SYSTEM_PROMPT]


def test_tool_without_credits_is_refused_before_upstream(client, headers_for, make_user, monkeypatch):
    calls: list[str] = []

    async def _ask(message: str, system_prompt: str = perplexity_service.SEARCH_SYSTEM_PROMPT) -> str:
        calls.append(message)
        return "nope"

    monkeypatch.setattr(perplexity_service, "ask_perplexity", _ask)
    user = make_user(sub_tier=SubTier.TIER_2, credits=0.0, credits_left=0.0)
    resp = client.post(
        f"/api/call/perplexity/ask?user_id={user.id}", headers=headers_for(user.id), json={"message": "q"}
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "BIL301"
    assert calls == []


def test_whatsapp_send_for_tier_two(client, headers_for, make_user, sent_sms):
    user = make_user(sub_tier=SubTier.TIER_2, credits=2.0, preferred_number="+15557770000")
    resp = client.post(
        f"/api/call/whatsapp/send?user_id={user.id}",
        headers=headers_for(user.id),
        json={"message": "on my way"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["sid"] == "SM42"
    assert sent_sms[0]["to"] == user.phone_number
    assert sent_sms[0]["from_number"] == "+15557770000"
    assert sent_sms[0]["account_sid"] is None


def test_whatsapp_uses_own_twilio_credentials(client, headers_for, make_user, sent_sms):
    user = make_user(
        sub_tier=SubTier.TIER_2,
        credits=2.0,
        twilio_phone="+15556660000",
        twilio_sid="AC" + "1" * 32,
        twilio_token="t" * 32,
    )
    resp = client.post(
        f"/api/call/whatsapp/send?user_id={user.id}",
        headers=headers_for(user.id),
        json={"message": "hi", "to": "+15551234567"},
    )
    assert resp.status_code == 200, resp.text
    assert sent_sms[0]["to"] == "+15551234567"
    assert sent_sms[0]["from_number"] == "+15556660000"
    assert sent_sms[0]["account_sid"] == "AC" + "1" * 32


def test_email_send_failure_is_not_charged(client, headers_for, db_session, make_user, monkeypatch):
    monkeypatch.setattr(email_service, "send_email", lambda to, subject, body: False)
    user = make_user(sub_tier=SubTier.TIER_2, credits=2.0)
    resp = client.post(
        f"/api/call/email/send?user_id={user.id}",
        headers=headers_for(user.id),
        json={"to": "friend@example.com", "subject": "Hi", "body": "Hello"},
    )
    assert resp.status_code == 500
    assert resp.json()["code"] == "SYS401"
    db_session.expire_all()
    assert db_session.get(User, user.id).credits == pytest.approx(2.0)


def test_email_send_success(client, headers_for, make_user, monkeypatch):
    monkeypatch.setattr(email_service, "send_email", lambda to, subject, body: True)
    user = make_user(discount=True, credits=1.0)
    resp = client.post(
        f"/api/call/email/send?user_id={user.id}",
        headers=headers_for(user.id),
        json={"to": "friend@example.com", "subject": "Hi", "body": "Hello"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "sent"
