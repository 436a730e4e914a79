"""Audit logging utilities.

Writes structured JSON lines to a dedicated audit log file and standard logger.
Each event should describe a security- or billing-relevant action
(access gate decisions, admin adjustments, auth failures).
"""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any

from lightfriend.core.config import settings

_logger = logging.getLogger("audit")


def log_audit_event(action: str, user_id: int | None = None, status: str = "success", **metadata: Any) -> None:
    """Record an audit event.

    Parameters:
        action: A machine-readable action key (e.g. 'gate.tool.allowed', 'admin.credits.monthly').
        user_id: The acting or affected user's ID (if available).
        status: 'success' | 'failure' | 'denied'.
        **metadata: Additional context fields (ids, amounts, paths).
    """
    event = {
        "ts": int(time.time()),
        "action": action,
        "user_id": user_id,
        "status": status,
        **metadata,
    }
    line = json.dumps(event, separators=(",", ":"), default=str)
    path = settings.AUDIT_LOG_FILE
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError:
        _logger.debug("Failed to write audit event to file: %s", event)
    _logger.info(line)


def log_denied(action: str, user_id: int | None = None, reason: str | None = None, **extra: Any) -> None:
    log_audit_event(action, user_id=user_id, status="denied", reason=reason, **extra)


def log_failure(action: str, user_id: int | None = None, error: str | None = None, **extra: Any) -> None:
    log_audit_event(action, user_id=user_id, status="failure", error=error, **extra)
