"""Time utilities (IST)."""

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

IST = ZoneInfo("Asia/Kolkata")


def now_ist() -> datetime:
    """Current time in IST, timezone-aware."""
    return datetime.now(IST)


def now_ist_naive() -> datetime:
    """
    Current time in IST, returned as naive datetime for DB storage.
    """
    return now_ist().replace(tzinfo=None)


def to_ist(dt: datetime, naive_assumed_tz: tzinfo = IST) -> datetime:
    """
    Convert datetime to IST timezone-aware value.

    Naive values are interpreted as IST: every clock in this service is an
    exchange clock.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=naive_assumed_tz)
    return dt.astimezone(IST)


def to_ist_iso(dt: datetime | None) -> str | None:
    """Convert datetime to IST and return ISO string with offset."""
    if dt is None:
        return None
    return to_ist(dt).isoformat()
