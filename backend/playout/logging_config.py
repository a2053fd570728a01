"""
Logging configuration for the playout engine.

structlog renders JSON lines on top of the stdlib logging tree, so uvicorn and
psycopg2 output end up in the same stream.
"""

import logging
import re
import sys
from typing import Any

import structlog

from playout.config import ENV, LOG_LEVEL

SECRET_KEYS = (
    "auth_token",
    "token",
    "password",
    "secret",
    "api_key",
    "authorization",
    "compliance_key",
)

SECRET_PATTERNS = (
    r"Bearer\s+[^\s]+",
    r"://[^:]+:[^@]+@",
)


def redact_secrets(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Redact player secrets and credentials from log events."""

    def redact_value(value: Any) -> Any:
        if isinstance(value, str):
            for pattern in SECRET_PATTERNS:
                value = re.sub(pattern, "***", value)
            return value
        if isinstance(value, dict):
            return {k: redact_value(v) for k, v in value.items()}
        if isinstance(value, list):
            return [redact_value(item) for item in value]
        return value

    for key in list(event_dict.keys()):
        if any(secret in key.lower() for secret in SECRET_KEYS):
            event_dict[key] = "***REDACTED***"
        else:
            event_dict[key] = redact_value(event_dict[key])

    return event_dict


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for JSON logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=(level or LOG_LEVEL).upper(),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with the service context."""
    return structlog.get_logger(name).bind(service="playout", env=ENV)
