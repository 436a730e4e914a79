"""Exception hierarchy for Lightfriend.

Every error surfaced to an API caller derives from LightfriendException and is
rendered as a flat JSON object: ``{"error": <message>, "code": <code>, ...details}``.

Error codes follow pattern: [CATEGORY][NUMBER]
- REQ: Malformed input (400)
- AUTH: Authentication / authorization (401, 403)
- USR: User lookup (404)
- BIL: Subscription, credits and payments (403, 400)
- SYS: Datastore and upstream failures (500)
"""

from __future__ import annotations

from typing import Any


class LightfriendException(Exception):
    """Base exception for all Lightfriend application errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with user-friendly message and metadata.

        Args:
            message: Human-readable error message (becomes the ``error`` field)
            code: Unique error code (e.g., "BIL300")
            status_code: HTTP status code (default: 400 Bad Request)
            details: Optional extra fields merged into the response body
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {"error": self.message, "code": self.code, **self.details}


# ============================================================================
# MALFORMED INPUT (REQ001-099)
# ============================================================================

class InvalidUserIdError(LightfriendException):
    """The user_id query parameter is missing or not an integer."""

    def __init__(self):
        super().__init__(message="Missing or invalid user_id", code="REQ001", status_code=400)


class InvalidPayloadError(LightfriendException):
    def __init__(self, reason: str = "Invalid payload format"):
        super().__init__(message=reason, code="REQ002", status_code=400)


class InvalidAmountError(LightfriendException):
    def __init__(self, amount: float, minimum: float | None = None):
        if minimum is not None:
            message = f"Amount {amount:.2f} is below the minimum of {minimum:.2f}"
        else:
            message = f"Invalid amount: {amount}"
        super().__init__(
            message=message,
            code="REQ003",
            status_code=400,
            details={"amount": amount, "minimum": minimum} if minimum is not None else {"amount": amount},
        )


class UnsupportedCountryError(LightfriendException):
    def __init__(self, country: str):
        super().__init__(
            message=f"Pricing not available for country '{country}'",
            code="REQ004",
            status_code=400,
            details={"country": country},
        )


class InvalidTierError(LightfriendException):
    def __init__(self, tier: str, allowed: list[str]):
        super().__init__(
            message=f"Invalid tier '{tier}'",
            code="REQ005",
            status_code=400,
            details={"allowed": allowed},
        )


# ============================================================================
# AUTH ERRORS (AUTH100-199)
# ============================================================================

class AuthenticationError(LightfriendException):
    """Bearer token absent or invalid."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message=message, code="AUTH100", status_code=401)


class AdminRequiredError(LightfriendException):
    def __init__(self):
        super().__init__(message="Admin access required", code="AUTH101", status_code=403)


class ForbiddenError(LightfriendException):
    """User may not act on another user's resources."""

    def __init__(self, action: str | None = None):
        message = "You are not authorized to perform this action" if not action else f"Not authorized: {action}"
        super().__init__(message=message, code="AUTH102", status_code=403)


# ============================================================================
# USER ERRORS (USR200-299)
# ============================================================================

class UserNotFoundError(LightfriendException):
    def __init__(self, identifier: str | int | None = None):
        super().__init__(
            message="User not found",
            code="USR200",
            status_code=404,
            details={"identifier": identifier} if identifier is not None else {},
        )


# ============================================================================
# BILLING ERRORS (BIL300-399)
# ============================================================================

class SubscriptionRequiredError(LightfriendException):
    """The caller's tier does not unlock the requested tool."""

    def __init__(self, tool: str | None = None):
        details: dict[str, Any] = {
            "message": "Please upgrade your subscription to access this feature",
            "upgrade_url": "/billing",
        }
        if tool:
            details["tool"] = tool
        super().__init__(
            message="This tool requires a subscription",
            code="BIL300",
            status_code=403,
            details=details,
        )


class InsufficientCreditsError(LightfriendException):
    def __init__(self, required: float, available: float):
        super().__init__(
            message="Not enough credits to complete this action",
            code="BIL301",
            status_code=403,
            details={
                "required": round(required, 4),
                "available": round(max(available, 0.0), 4),
                "upgrade_url": "/billing",
            },
        )


class PaymentError(LightfriendException):
    """Checkout or payment verification failed."""

    def __init__(self, message: str, status_code: int = 400, details: dict[str, Any] | None = None):
        super().__init__(message=message, code="BIL302", status_code=status_code, details=details)


# ============================================================================
# SYSTEM ERRORS (SYS400-499)
# ============================================================================

class DatastoreError(LightfriendException):
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message=message, code="SYS400", status_code=500)


class UpstreamServiceError(LightfriendException):
    """Third-party API (Perplexity, Twilio, Stripe, weather) failed."""

    def __init__(self, service_name: str, reason: str | None = None):
        message = f"{service_name} is currently unavailable"
        super().__init__(
            message=message,
            code="SYS401",
            status_code=500,
            details={"service": service_name, "reason": reason} if reason else {"service": service_name},
        )


class ConfigurationError(LightfriendException):
    def __init__(self, parameter: str):
        super().__init__(
            message=f"Configuration error: {parameter} is not configured properly",
            code="SYS402",
            status_code=500,
            details={"parameter": parameter},
        )
