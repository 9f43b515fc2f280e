"""Structured JSON audit logging.

Logs go to stdout as JSON lines, with optional file output via
AUDIT_LOG_FILE. Events carry the endpoint, user id and credential source;
credential fields that slip into ``audit_data`` are masked on the way out.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from assistants_gateway.config.settings import get_settings

AUDIT_LOGGER = "assistants_gateway.audit"
REDACTED = "[REDACTED]"

# Compared case-insensitively with "-" and "_" ignored
SENSITIVE_FIELDS = frozenset({"apikey", "xapikey", "authorization", "ocpapimsubscriptionkey"})

# Request-scoped context for correlating log entries
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        if hasattr(record, "audit_data"):
            log_entry.update(record.audit_data)
        return json.dumps(log_entry, default=str)


class RedactSecretsFilter(logging.Filter):
    """Masks credential fields in ``audit_data`` before any handler sees them.

    Header dicts and user key payloads can end up in audit events; their
    ``api-key``/``Authorization`` entries are replaced, nested dicts included.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        audit_data = getattr(record, "audit_data", None)
        if isinstance(audit_data, dict):
            record.audit_data = _redact(audit_data)
        return True


def _is_sensitive(key) -> bool:
    return str(key).lower().replace("-", "").replace("_", "") in SENSITIVE_FIELDS


def _redact(data: dict) -> dict:
    redacted = {}
    for key, value in data.items():
        if _is_sensitive(key) and value:
            redacted[key] = REDACTED
        elif isinstance(value, dict):
            redacted[key] = _redact(value)
        else:
            redacted[key] = value
    return redacted


def setup_logging() -> None:
    """Configure the audit logger with JSON output."""
    settings = get_settings()

    logger = logging.getLogger(AUDIT_LOGGER)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.handlers.clear()
    logger.filters.clear()
    logger.addFilter(RedactSecretsFilter())

    formatter = JSONFormatter()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if settings.audit_log_file:
        file_handler = logging.FileHandler(settings.audit_log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


class RequestTimer:
    """Context manager to measure upstream call latency."""

    def __init__(self):
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
