# app/core/time_utils.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Return `value` as an aware UTC datetime (None passes through).

    Some backends (SQLite) hand back naive datetimes for values that were
    stored as UTC; those are tagged as UTC rather than converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
