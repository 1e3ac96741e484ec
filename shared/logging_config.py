"""
Centralized logging configuration.

This module sets up structured logging with:
- Settings-based configuration (dev vs production)
- JSON formatting for production, pretty console for development
- IP hashing for privacy in production
- Redaction of passwords, slugs, nonces, tokens and stored hashes
"""

import hashlib
import logging
import sys

import structlog
from structlog.types import EventDict, Processor

from config import LoggingSettings

_hash_ips = False

# Sensitive fields to redact from logs
REDACTED_FIELDS = {
    "password",
    "confirm",
    "password_hash",
    "token",
    "slug",
    "nonce",
    "session_id",
    "authorization",
    "secret",
}

_SENSITIVE_FRAGMENTS = ("password", "token", "slug", "nonce", "secret", "hash")

_UNREDACTED_KEYS = ("level", "event", "timestamp", "logger", "ip_hash")


def hash_ip(ip_address: str) -> str:
    """
    Hash IP address for privacy in production.

    In production, returns SHA-256 hash (first 16 chars).
    In development, returns the original IP for easier debugging.
    """
    if _hash_ips and ip_address:
        return hashlib.sha256(ip_address.encode()).hexdigest()[:16]
    return ip_address


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _UNREDACTED_KEYS:
            continue
        lowered = key.lower()
        if lowered in REDACTED_FIELDS or any(
            fragment in lowered for fragment in _SENSITIVE_FRAGMENTS
        ):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str) -> None:
    """
    Configure structlog with appropriate processors for the environment.

    Production: JSON formatting for easy parsing
    Development: Pretty console formatting with colors
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            pad_event=15,
            sort_keys=False,
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(log_level: str) -> None:
    """Route standard library logging to stdout at the configured level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Silence pymongo debug logs (connection pool, server monitoring, etc.)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def setup_logging(settings: LoggingSettings, env: str = "development") -> None:
    """
    Initialize logging system for the application.

    Should be called early in application startup (in create_app).
    """
    global _hash_ips
    _hash_ips = env == "production"

    configure_stdlib_logging(settings.log_level)
    configure_structlog(settings.log_format)

    logger = structlog.get_logger(__name__)
    logger.info(
        "logging_initialized",
        env=env,
        log_level=settings.log_level,
        log_format=settings.log_format,
    )
