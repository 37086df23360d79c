"""
Structured logging for the engine.

Every engine log line is an event: a dotted name (`streak.reset`,
`reflection.submitted`) plus flat context fields. JSON in production,
one-line key=value output everywhere else. The request id bound by the
middleware is attached to every record.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = "dailyreflect"
MAX_FIELD_LENGTH = 500

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord carries; anything else arrived through `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "request_id"}


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def latency_bucket_ms(latency_ms: float) -> str:
    for limit, label in ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms")):
        if latency_ms < limit:
            return label
    return ">=1000ms"


def event_fields(record: logging.LogRecord) -> Dict[str, object]:
    """Context fields attached to a record, in insertion order, None values skipped."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and value is not None
    }


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "event": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(event_fields(record))
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        rid = getattr(record, "request_id", None)
        parts = [_timestamp(record), record.levelname, f"[{LOGGER_NAME}]"]
        if rid:
            parts.append(f"[rid={rid}]")
        parts.append(record.getMessage())
        parts.extend(f"{key}={value}" for key, value in event_fields(record).items())
        return " ".join(parts)


def configure_logging(env: str = "development", level: str = "INFO") -> None:
    """Install the engine handler. JSON in production, pretty otherwise."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())
    logger.handlers = [handler]


def _truncate(value: object) -> str:
    text = str(value)
    if len(text) <= MAX_FIELD_LENGTH:
        return text
    return text[:MAX_FIELD_LENGTH] + "...<truncated>"


def log_event(
    level: str,
    event: str,
    *,
    user_id: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """
    Log one engine event.

    `extra` values are stringified and truncated so user input can never
    blow up a log line.
    """
    fields: Dict[str, object] = {
        "request_id": get_request_id(),
        "user_id": user_id,
        "event_type": event,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = _truncate(value)

    logger = logging.getLogger(LOGGER_NAME)
    getattr(logger, level, logger.info)(event, extra=fields)
