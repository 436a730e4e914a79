"""Root logging setup.

Caller phone numbers show up in most webhook and SMS log lines; every record
passes through ``PhoneMaskFilter`` so only the last four digits are kept.
"""
from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any

from lightfriend.core.config import settings

_RESERVED_ATTRS = set(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}

_PHONE_RE = re.compile(r"\+\d{3,}(\d{4})\b")

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "stripe", "multipart")


def mask_phone_numbers(text: str) -> str:
    return _PHONE_RE.sub(lambda m: "+***" + m.group(1), text)


class PhoneMaskFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        record.msg = mask_phone_numbers(str(record.msg))
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "app": settings.APP_NAME,
            "env": settings.ENV,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra = {k: v for k, v in record.__dict__.items() if not k.startswith("_") and k not in _RESERVED_ATTRS}
        if extra:
            payload["extra"] = extra
        return json.dumps(payload, default=str)


def init_logging(level: int | None = None) -> None:
    root = logging.getLogger()
    if any(isinstance(f, PhoneMaskFilter) for h in root.handlers for f in h.filters):
        return
    handler = logging.StreamHandler(sys.stdout)
    if settings.LOG_FORMAT.lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
    handler.addFilter(PhoneMaskFilter())
    root.setLevel(level or getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.addHandler(handler)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
