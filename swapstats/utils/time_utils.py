from datetime import datetime, timedelta, timezone
from typing import Optional


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Times without a timezone are taken as UTC."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_unix(dt: datetime) -> int:
    return int(as_utc(dt).timestamp())


def from_unix(ts: int) -> datetime:
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)


def truncate(dt: datetime, interval: timedelta) -> datetime:
    """Floor ``dt`` to a multiple of ``interval`` since the unix epoch."""
    step = int(interval.total_seconds())
    if step <= 0:
        return dt
    ts = to_unix(dt)
    return from_unix(ts - ts % step)


def round_unix(ts: int, step: int) -> int:
    """Round to the nearest multiple of ``step``; halfway values round up."""
    if step <= 0:
        return ts
    q, r = divmod(ts, step)
    if r * 2 >= step:
        q += 1
    return q * step


def optional_unix(dt: Optional[datetime]) -> Optional[int]:
    return None if dt is None else to_unix(dt)


def ceil_unix(ts: int, step: int) -> int:
    if step <= 0:
        return ts
    return -(-ts // step) * step
