"""Shared date helpers"""

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching how timestamps are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_unix(timestamp: Optional[int]) -> Optional[datetime]:
    """Convert a unix timestamp (seconds) to a naive UTC datetime"""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).replace(tzinfo=None)


def is_in_past(value: date, today: Optional[date] = None) -> bool:
    today = today or utcnow().date()
    return value < today
