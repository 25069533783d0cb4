"""
Structured logging configuration.

Uses structlog for JSON-formatted logs. Request and charge identifiers bound
with structlog.contextvars are merged into every event, and card data is
redacted before rendering.
"""
import logging
import re
import sys
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

from charge_system.config import get_settings

# Keys never written to logs as-is
SENSITIVE_KEYS = frozenset({"card_number", "cvv", "card_holder_name"})

# Card-number-like digit runs (PAN length is 13-19)
_PAN_PATTERN = re.compile(r"\b\d{9,15}(\d{4})\b")

REDACTED = "[REDACTED]"


def _mask_pan(value: str) -> str:
    return _PAN_PATTERN.sub(lambda m: "*" * (len(m.group(0)) - 4) + m.group(1), value)


def redact_card_data(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """
    Strip card data from log events.

    Sensitive keys are replaced outright, and any card-number-like digit run
    in a string value keeps only its last four digits.
    """
    for key, value in event_dict.items():
        if key in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            event_dict[key] = _mask_pan(value)
    return event_dict


def add_app_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add application name and environment to log events."""
    settings = get_settings()
    event_dict["app_name"] = settings.app_name
    event_dict["app_env"] = settings.app_env
    return event_dict


def setup_logging() -> None:
    """
    Configure structured logging with JSON formatter.

    Context bound through structlog.contextvars (request_id, idempotency_key)
    is merged into every event.
    """
    settings = get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_app_context,
            redact_card_data,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    json_handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        rename_fields={
            "timestamp": "@timestamp",
            "level": "level",
            "name": "logger",
            "message": "message",
        },
    )
    json_handler.setFormatter(formatter)
    root_logger.addHandler(json_handler)

    # Suppress noisy loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    logger = structlog.get_logger(__name__)
    logger.info(
        "logging_configured",
        log_level=settings.log_level,
        app_env=settings.app_env,
    )
