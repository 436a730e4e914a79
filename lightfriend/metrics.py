"""Metrics facade.

Service code should ONLY call the semantic helpers here so the Prometheus
registry details stay in one place.
"""

from __future__ import annotations

from prometheus_client import Counter

_ACCESS_GATE_DECISIONS = Counter(
    "access_gate_decisions_total", "Subscription gate decisions", ["tool", "outcome"]
)
_VAPI_EVENTS = Counter("vapi_events_total", "Voice assistant webhook events received", ["request_type"])
_VAPI_PARSE_ERRORS = Counter("vapi_parse_errors_total", "Voice assistant payloads that failed to parse")
_TOOL_CALLS = Counter("tool_calls_total", "Assistant tool invocations", ["tool", "outcome"])
_CHECKOUT_SESSIONS = Counter("stripe_checkout_sessions_total", "Stripe checkout sessions created", ["kind"])
_STRIPE_WEBHOOKS = Counter("stripe_webhooks_total", "Stripe webhook events handled", ["event_type", "status"])
_CREDITS_CHARGED = Counter("credits_charged_total", "Credits consumed by billable actions", ["activity_type"])


def access_gate_decision(tool: str, allowed: bool) -> None:
    _ACCESS_GATE_DECISIONS.labels(tool=tool or "none", outcome="allowed" if allowed else "denied").inc()


def vapi_event(request_type: str) -> None:
    _VAPI_EVENTS.labels(request_type=request_type or "unknown").inc()


def vapi_parse_error() -> None:
    _VAPI_PARSE_ERRORS.inc()


def tool_call(tool: str, ok: bool) -> None:
    _TOOL_CALLS.labels(tool=tool, outcome="success" if ok else "error").inc()


def checkout_session_created(kind: str) -> None:
    _CHECKOUT_SESSIONS.labels(kind=kind).inc()


def stripe_webhook(event_type: str, status: str) -> None:
    _STRIPE_WEBHOOKS.labels(event_type=event_type, status=status).inc()


def credits_charged(activity_type: str, amount: float) -> None:
    if amount > 0:
        _CREDITS_CHARGED.labels(activity_type=activity_type).inc(amount)


_RATE_LIMIT_EXCEEDED = Counter("rate_limit_exceeded_total", "Requests rejected by the rate limiter")


def rate_limit_exceeded() -> None:
    _RATE_LIMIT_EXCEEDED.inc()
