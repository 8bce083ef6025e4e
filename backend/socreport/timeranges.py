from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import InvalidTimeRangeError

# label -> hours ago
TIME_RANGES: dict[str, int] = {
    "1h": 1,
    "2h": 2,
    "6h": 6,
    "12h": 12,
    "24h": 24,
    "3d": 72,
    "7d": 168,
    "14d": 336,
    "30d": 720,
    "90d": 2160,
}

DEFAULT_TIME_RANGE = "24h"


def hours_for(label: str) -> int:
    try:
        return TIME_RANGES[label]
    except (KeyError, TypeError):
        raise InvalidTimeRangeError(label) from None


def from_date(label: str, now: Optional[datetime] = None) -> datetime:
    """Start of the window covered by `label`, in UTC."""
    now = now or datetime.now(timezone.utc)
    return now - timedelta(hours=hours_for(label))


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
