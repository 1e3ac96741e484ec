"""
Logger factory and helpers.

Provides:
- get_logger(): Get a configured logger instance
- hash_ip(): Hash IP addresses for privacy
- setup_logging(): re-exported from shared.logging_config
"""

from typing import Optional

import structlog
from structlog.stdlib import BoundLogger

from shared.logging_config import hash_ip as _hash_ip
from shared.logging_config import setup_logging


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("login_succeeded", user_id="123")
    """
    return structlog.get_logger(name)


def hash_ip(ip_address: Optional[str]) -> Optional[str]:
    """Hash *ip_address* for logging; ``None`` passes through."""
    if ip_address is None:
        return None
    return _hash_ip(ip_address)


__all__ = ["get_logger", "hash_ip", "setup_logging"]
