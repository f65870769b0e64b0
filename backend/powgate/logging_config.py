"""
Structured logging configuration using structlog.

JSON lines when ``log_format=json``, colored console output otherwise.
Everything goes to stdout.
"""

import logging
import sys

import structlog

from powgate.config import Settings, settings

# Event keys whose values would let a reader replay a solution or a credential
REDACTED_KEYS = frozenset({"secret", "nonce", "token", "credential", "cookie", "authorization"})
REDACTED = "[redacted]"


def redact_sensitive(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor that blanks challenge secrets, nonces and credentials."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def setup_logging(config: Settings = settings) -> None:
    """
    Configure structlog and stdlib logging integration.

    Call this once at application startup.
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_sensitive,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # APScheduler and uvicorn log through stdlib
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stdout, level=level)
    for noisy in ("uvicorn.access", "apscheduler"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
