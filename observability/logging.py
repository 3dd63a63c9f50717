"""
Structured logging for the aggregator.

Every record carries the request's correlation id. Search pipeline events
(``skinsourcing.metrics``) pass their fields through ``extra=``; the JSON
formatter keeps them as top-level keys and the text formatter appends them
after the message, so one provider call reads the same in both modes:

    ... | Provider Steam completed | event=provider_complete provider=Steam status=ok results=3 latency_ms=412.7
"""

import logging
import os
import uuid
from contextvars import ContextVar
from typing import Optional, Dict, Any, List, Tuple

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "skin-price-aggregator"

# (record attribute, text label) for search pipeline events, in display order
SEARCH_EVENT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("event", "event"),
    ("provider_id", "provider"),
    ("providers_resolved", "providers"),
    ("status", "status"),
    ("result_count", "results"),
    ("results", "results"),
    ("latency_ms", "latency_ms"),
    ("error_message", "error"),
)

_correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id_ctx.get()


class correlation_id_context:
    """Binds a correlation id (a fresh ``req-…`` one when none is given) for the block."""

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or f"req-{uuid.uuid4().hex[:16]}"
        self.token = None

    def __enter__(self):
        self.token = _correlation_id_ctx.set(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        _correlation_id_ctx.reset(self.token)


class CorrelationIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "none"
        return True


class SensitiveDataFilter(logging.Filter):
    """Redacts marketplace credentials from log args and extra fields."""

    SENSITIVE_KEYS = {
        "api_key", "apikey", "x-api-key", "authorization", "token", "secret",
        "cookie", "session", "steam_login_secure", "sessionid",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.args = self._redact(record.args)

        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE_KEYS:
                setattr(record, key, "[REDACTED]")
        return True

    def _redact(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                k: "[REDACTED]" if str(k).lower() in self.SENSITIVE_KEYS else self._redact(v)
                for k, v in data.items()
            }
        if isinstance(data, (list, tuple)):
            return type(data)(self._redact(item) for item in data)
        return data


def _round_latency(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return round(float(value), 1)
    return value


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON lines for log shippers.

    Search events stay flat: ``provider_id``, ``status``, ``result_count``
    and ``latency_ms`` are top-level keys. A ``search_complete`` summary
    also gets ``providers_called`` / ``providers_failed`` next to its nested
    ``providers`` block, and a ``null`` ``error_message`` is dropped.
    """

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["correlation_id"] = getattr(record, "correlation_id", "none")
        log_record["environment"] = os.getenv("ENVIRONMENT", "development")
        log_record["service"] = SERVICE_NAME

        if "latency_ms" in log_record:
            log_record["latency_ms"] = _round_latency(log_record["latency_ms"])
        if log_record.get("error_message", "") is None:
            del log_record["error_message"]

        providers = log_record.get("providers")
        if isinstance(providers, dict):
            log_record["providers_called"] = providers.get("called", 0)
            log_record["providers_failed"] = providers.get("failed", 0)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class SearchEventFormatter(logging.Formatter):
    """Text formatter that appends search event fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = _search_event_pairs(record)
        if not pairs:
            return line
        return f"{line} | " + " ".join(f"{label}={value}" for label, value in pairs)


def _search_event_pairs(record: logging.LogRecord) -> List[Tuple[str, Any]]:
    """Collect the search event fields present on a record, for text output."""
    if not hasattr(record, "event"):
        return []
    pairs: List[Tuple[str, Any]] = []
    for attr, label in SEARCH_EVENT_FIELDS:
        value = getattr(record, attr, None)
        if value is None:
            continue
        if attr == "latency_ms":
            value = _round_latency(value)
        elif isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value) or "-"
        pairs.append((label, value))

    providers = getattr(record, "providers", None)
    if isinstance(providers, dict):
        pairs.append(("failed", f"{providers.get('failed', 0)}/{providers.get('called', 0)}"))
    return pairs


def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Environment variables:
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL
    - LOG_FORMAT: json or text (default: json in production, text otherwise)
    - ENVIRONMENT: development, staging, production
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("LOG_FORMAT", "json" if os.getenv("ENVIRONMENT") == "production" else "text")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(
            CustomJsonFormatter(
                "%(timestamp)s %(level)s %(logger)s %(correlation_id)s %(message)s",
                rename_fields={"timestamp": "@timestamp"},
            )
        )
    else:
        handler.setFormatter(
            SearchEventFormatter(
                "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    handler.addFilter(CorrelationIDFilter())
    handler.addFilter(SensitiveDataFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # provider_complete events already cover each marketplace call
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
