"""Tests for the subscription access gate on /api/call tools."""
import pytest
from sqlalchemy.exc import OperationalError

from lightfriend.api.main import app
from lightfriend.db.session import get_db
from lightfriend.models.models import SubTier, Tool, User
from lightfriend.services import perplexity_service, twilio_service
from lightfriend.utils.access_gate import TIER_1_TOOLS, extract_tool_name, requires_subscription


@pytest.fixture
def fake_perplexity(monkeypatch):
    calls: list[str] = []

    async def _ask(message: str, system_prompt: str = perplexity_service.SEARCH_SYSTEM_PROMPT) -> str:
        calls.append(message)
        return "42"

    monkeypatch.setattr(perplexity_service, "ask_perplexity", _ask)
    return calls


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/api/call/perplexity/ask", "perplexity"),
        ("/api/call/weather", "weather"),
        ("/api/call/", ""),
        ("/api/call", ""),
        ("/api/profile", ""),
        ("/call/perplexity", ""),
        ("", ""),
    ],
)
def test_extract_tool_name(path, expected):
    assert extract_tool_name(path) == expected


def test_tier_one_tools_are_search_weather_assistant():
    assert TIER_1_TOOLS == {Tool.PERPLEXITY, Tool.WEATHER, Tool.ASSISTANT}


@pytest.mark.parametrize("tier", [None, SubTier.TIER_0, SubTier.TIER_1, SubTier.TIER_2, "bogus"])
@pytest.mark.parametrize("path", ["/api/call/whatsapp/send", "/api/call/perplexity/ask", "/api/other"])
def test_discount_always_grants_access(tier, path):
    assert requires_subscription(path, tier, True) is False


@pytest.mark.parametrize("path", ["/api/call/whatsapp/send", "/api/call/email/send", "/api/profile", ""])
def test_tier_two_always_grants_access(path):
    assert requires_subscription(path, SubTier.TIER_2, False) is False
    assert requires_subscription(path, "tier 2", False) is False


@pytest.mark.parametrize(
    "path,denied",
    [
        ("/api/call/perplexity/ask", False),
        ("/api/call/weather", False),
        ("/api/call/assistant/ask", False),
        ("/api/call/whatsapp/send", True),
        ("/api/call/email/send", True),
        ("/api/call/calendar", True),
        ("/api/call/shazam", True),
        ("/api/profile", True),
    ],
)
def test_tier_one_only_unlocks_basic_tools(path, denied):
    assert requires_subscription(path, SubTier.TIER_1, False) is denied


@pytest.mark.parametrize("tier", [None, SubTier.TIER_0, "", "premium"])
def test_no_subscription_is_denied(tier):
    assert requires_subscription("/api/call/perplexity/ask", tier, False) is True


def test_gate_requires_bearer_token(client, make_user, fake_perplexity):
    user = make_user(sub_tier=SubTier.TIER_2, credits=1.0)
    resp = client.post(f"/api/call/perplexity/ask?user_id={user.id}", json={"message": "hi"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "AUTH100"
    assert fake_perplexity == []


def test_gate_rejects_token_for_another_user(client, db_session, make_user, headers_for, monkeypatch):
    sent: list[str] = []

    async def _send(to, body, **kwargs):
        sent.append(to)
        return "SM123"

    monkeypatch.setattr(twilio_service, "send_sms", _send)
    caller = make_user(sub_tier=SubTier.TIER_1, credits=1.0)
    victim = make_user(sub_tier=SubTier.TIER_2, credits=5.0)
    resp = client.post(
        f"/api/call/whatsapp/send?user_id={victim.id}",
        headers=headers_for(caller.id),
        json={"message": "hello"},
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "AUTH102"
    assert sent == []
    db_session.expire_all()
    assert db_session.get(User, victim.id).credits == pytest.approx(5.0)


def test_gate_lets_admin_act_for_user(client, make_user, headers_for, fake_perplexity):
    admin = make_user(is_admin=True)
    user = make_user(sub_tier=SubTier.TIER_1, credits=1.0)
    resp = client.post(
        f"/api/call/perplexity/ask?user_id={user.id}", headers=headers_for(admin.id), json={"message": "q"}
    )
    assert resp.status_code == 200, resp.text


def test_gate_requires_user_id(client, make_user, headers_for, fake_perplexity):
    user = make_user(sub_tier=SubTier.TIER_2)
    resp = client.post("/api/call/perplexity/ask", headers=headers_for(user.id), json={"message": "hi"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing or invalid user_id"


def test_gate_rejects_non_integer_user_id(client, make_user, headers_for, fake_perplexity):
    user = make_user(sub_tier=SubTier.TIER_2)
    resp = client.post(
        "/api/call/perplexity/ask?user_id=abc", headers=headers_for(user.id), json={"message": "hi"}
    )
    assert resp.status_code == 400


def test_gate_unknown_user(client, make_user, headers_for, fake_perplexity):
    admin = make_user(is_admin=True)
    resp = client.post(
        "/api/call/perplexity/ask?user_id=999", headers=headers_for(admin.id), json={"message": "hi"}
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "User not found"


def test_gate_allows_tier_one_perplexity(client, make_user, headers_for, fake_perplexity):
    user = make_user(sub_tier=SubTier.TIER_1, credits_left=1.0)
    resp = client.post(
        f"/api/call/perplexity/ask?user_id={user.id}",
        headers=headers_for(user.id),
        json={"message": "meaning of life"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["answer"] == "42"
    assert fake_perplexity == ["meaning of life"]


def test_gate_denies_tier_one_whatsapp(client, make_user, headers_for, monkeypatch):
    sent: list[str] = []

    async def _send(to, body, **kwargs):
        sent.append(to)
        return "SM123"

    monkeypatch.setattr(twilio_service, "send_sms", _send)
    user = make_user(sub_tier=SubTier.TIER_1, credits=5.0)
    resp = client.post(
        f"/api/call/whatsapp/send?user_id={user.id}", headers=headers_for(user.id), json={"message": "hello"}
    )
    assert resp.status_code == 403
    body = resp.json()
    assert body["error"] == "This tool requires a subscription"
    assert body["message"] == "Please upgrade your subscription to access this feature"
    assert body["upgrade_url"] == "/billing"
    assert sent == []


def test_gate_allows_discount_user_without_tier(client, make_user, headers_for, fake_perplexity):
    user = make_user(discount=True, credits=1.0)
    resp = client.post(
        f"/api/call/perplexity/ask?user_id={user.id}", headers=headers_for(user.id), json={"message": "q"}
    )
    assert resp.status_code == 200, resp.text


def test_gate_denies_user_without_subscription(client, make_user, headers_for, fake_perplexity):
    user = make_user(credits=10.0)
    resp = client.post(
        f"/api/call/perplexity/ask?user_id={user.id}", headers=headers_for(user.id), json={"message": "q"}
    )
    assert resp.status_code == 403
    assert fake_perplexity == []


def test_gate_denies_expired_plan(client, db_session, make_user, headers_for, fake_perplexity):
    user = make_user(sub_tier=SubTier.TIER_2, time_to_live=1000, credits_left=3.0, credits=1.0)
    resp = client.post(
        f"/api/call/perplexity/ask?user_id={user.id}", headers=headers_for(user.id), json={"message": "q"}
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "BIL300"
    assert fake_perplexity == []
    db_session.expire_all()
    reloaded = db_session.get(User, user.id)
    assert reloaded.sub_tier is None
    assert reloaded.time_to_live is None
    assert reloaded.credits == pytest.approx(1.0)


def test_gate_keeps_plan_before_expiry(client, make_user, headers_for, fake_perplexity):
    user = make_user(sub_tier=SubTier.TIER_1, time_to_live=4_000_000_000, credits_left=1.0)
    resp = client.post(
        f"/api/call/perplexity/ask?user_id={user.id}", headers=headers_for(user.id), json={"message": "q"}
    )
    assert resp.status_code == 200, resp.text


class _FailingUserLookupSession:
    """Answers the admin lookup, then fails every further query."""

    def __init__(self):
        self.calls = 0

    def scalar(self, *args, **kwargs):
        self.calls += 1
        if self.calls == 1:
            return False
        raise OperationalError("SELECT", {}, Exception("database is down"))

    def close(self):
        pass


def test_gate_datastore_failure_is_500(client, headers_for, fake_perplexity):
    app.dependency_overrides[get_db] = lambda: _FailingUserLookupSession()
    try:
        resp = client.post(
            "/api/call/perplexity/ask?user_id=1", headers=headers_for(1), json={"message": "q"}
        )
    finally:
        app.dependency_overrides.pop(get_db, None)
    assert resp.status_code == 500
    assert resp.json()["code"] == "SYS400"
    assert fake_perplexity == []
