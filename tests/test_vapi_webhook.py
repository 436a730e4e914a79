"""Tests for the voice assistant webhook dispatcher."""
import pytest

from lightfriend.core.config import settings
from lightfriend.core.exceptions import UpstreamServiceError
from lightfriend.services import perplexity_service


def _event(request_type: str, number: str | None = "+15550001111", **extra) -> dict:
    message: dict = {"type": request_type, **extra}
    if number is not None:
        message["call"] = {"id": "call-1", "customer": {"number": number}}
    return {"message": message}


def _default_greeting() -> dict:
    return {
        "messageResponse": {
            "assistantId": settings.VAPI_ASSISTANT_ID,
            "assistantOverrides": {
                "firstMessage": "Hello! {{name}}",
                "variableValues": {"name": "nickname"},
            },
        }
    }


def test_server_echoes_payload(client):
    payload = {"anything": [1, 2, 3], "nested": {"ok": True}}
    resp = client.post("/api/vapi/server", json=payload)
    assert resp.status_code == 200
    assert resp.json() == payload


def test_print_extracts_number_and_type(client):
    resp = client.post("/api/vapi/phone-call-event/print", json=_event("status-update"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "success"
    assert body["phone_number"] == "+15550001111"
    assert body["request_type"] == "status-update"


def test_print_reports_invalid_payload(client):
    resp = client.post("/api/vapi/phone-call-event/print", json={"nope": 1})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "error"
    assert body["message"] == "Invalid payload format"
    assert body["error"]


@pytest.mark.parametrize("payload", [{"nope": 1}, {"message": {"call": {}}}, [1, 2]])
def test_unparseable_payload_returns_error_body(client, payload):
    resp = client.post("/api/vapi/phone-call-event", json=payload)
    assert resp.status_code == 200
    assert resp.json() == {"status": "error", "message": "Error parsing payload", "data": None}


def test_non_json_body_returns_error_body(client):
    resp = client.post(
        "/api/vapi/phone-call-event", content=b"not json", headers={"content-type": "application/json"}
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Error parsing payload"


def test_assistant_request_uses_nickname(client, make_user):
    make_user(phone_number="+15550001111", nickname="Rasmus")
    resp = client.post("/api/vapi/phone-call-event", json=_event("assistant-request"))
    assert resp.status_code == 200
    overrides = resp.json()["messageResponse"]["assistantOverrides"]
    assert overrides["firstMessage"] == "Hello! Rasmus"
    assert overrides["variableValues"] == {"name": "Rasmus"}
    assert resp.json()["messageResponse"]["assistantId"] == settings.VAPI_ASSISTANT_ID


def test_assistant_request_user_without_nickname_gets_default(client, make_user):
    make_user(phone_number="+15550001111")
    resp = client.post("/api/vapi/phone-call-event", json=_event("assistant-request"))
    assert resp.json() == _default_greeting()


def test_assistant_request_unknown_caller_gets_default(client):
    resp = client.post("/api/vapi/phone-call-event", json=_event("assistant-request", number="+19998887777"))
    assert resp.json() == _default_greeting()


def test_assistant_request_without_number_gets_default(client):
    resp = client.post("/api/vapi/phone-call-event", json=_event("assistant-request", number=None))
    assert resp.json() == _default_greeting()


def test_status_update_is_acknowledged(client):
    resp = client.post("/api/vapi/phone-call-event", json=_event("status-update", status="in-progress"))
    assert resp.json() == {"status": "success", "message": "Status update received", "data": None}


def test_unknown_type_returns_error(client):
    resp = client.post("/api/vapi/phone-call-event", json=_event("end-of-call-report"))
    assert resp.json() == {"status": "error", "message": "Unknown request type", "data": None}


def test_tool_calls_run_perplexity_and_report_unknown(client, monkeypatch):
    async def _ask(message: str, system_prompt: str = perplexity_service.SEARCH_SYSTEM_PROMPT) -> str:
        return f"answer to {message}"

    monkeypatch.setattr(perplexity_service, "ask_perplexity", _ask)
    payload = _event(
        "tool-calls",
        toolCalls=[
            {"id": "tc1", "type": "function", "function": {"name": "perplexity-ask", "arguments": {"message": "weather?"}}},
            {"id": "tc2", "type": "function", "function": {"name": "teleport", "arguments": "{}"}},
        ],
    )
    resp = client.post("/api/vapi/phone-call-event", json=payload)
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert results[0] == {"toolCallId": "tc1", "result": "answer to weather?"}
    assert results[1]["toolCallId"] == "tc2"
    assert "Unknown function" in results[1]["result"]


def test_tool_call_upstream_failure_is_contained(client, monkeypatch):
    async def _ask(message: str, system_prompt: str = perplexity_service.SEARCH_SYSTEM_PROMPT) -> str:
        raise UpstreamServiceError("Perplexity", "timeout")

    monkeypatch.setattr(perplexity_service, "ask_perplexity", _ask)
    payload = _event(
        "tool-calls",
        toolCallList=[
            {"id": "tc1", "function": {"name": "perplexity-ask", "arguments": '{"message": "news"}'}},
        ],
    )
    resp = client.post("/api/vapi/phone-call-event", json=payload)
    assert resp.status_code == 200
    assert resp.json()["results"][0]["toolCallId"] == "tc1"
