"""
Time helpers shared by models and services
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def to_utc_isoformat(value: Optional[datetime]) -> Optional[str]:
    """Return an ISO 8601 string in UTC with trailing ``Z``.

    Naive datetimes are assumed to already be in UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


def epoch_millis(value: Optional[datetime] = None) -> int:
    """Milliseconds since the epoch, used for storage keys"""
    value = value or utc_now()
    return int(value.timestamp() * 1000)
