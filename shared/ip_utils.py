"""
Client IP resolution for FastAPI requests.

Verification binds a slug to the IP that registered the account, so
registration and verification must resolve the address the same way.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

# Checked in order; the first one present wins
PROXY_HEADERS = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
)


def _leftmost(value: Optional[str]) -> str:
    # X-Forwarded-For lists the originating client first
    return (value or "").split(",")[0].strip()


def get_client_ip(request: Request) -> str:
    """Return the caller's IP, preferring proxy headers over the socket peer.

    Returns ``""`` when no address is available.
    """
    for header in PROXY_HEADERS:
        ip = _leftmost(request.headers.get(header))
        if ip:
            return ip
    return request.client.host if request.client else ""
