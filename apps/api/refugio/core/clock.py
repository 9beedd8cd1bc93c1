from __future__ import annotations

from datetime import datetime, timedelta, timezone

_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def touch(previous: datetime | None) -> datetime:
    """Return now, or one tick past ``previous`` when the clock has not moved."""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + _TICK
    return now
