"""
Date/time helpers, framework-agnostic.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime.

    MongoDB hands back naive datetimes (stored as UTC) unless the client is
    built with ``tz_aware=True``; naive values are assumed to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_timestamp(value: Optional[datetime]) -> Optional[int]:
    """Unix epoch seconds for *value*, or ``None``."""
    if value is None:
        return None
    return int(ensure_utc(value).timestamp())
