"""
Date/time helpers — framework-agnostic.

The engine works with timezone-aware UTC datetimes. BSON dates carry no zone
and come back from the driver as naive UTC, so repositories pass every value
through ``to_storage`` on the way in and ``as_utc`` on the way out.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC ``datetime``."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime. Naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as a naive UTC datetime suitable for a BSON date."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)
