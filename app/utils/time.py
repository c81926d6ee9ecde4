"""Time utilities."""

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from app.config import settings

LOCAL_TZ = ZoneInfo(settings.TIMEZONE)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_local(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> datetime:
    """Convert datetime to the configured market timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=naive_assumed_tz)
    return dt.astimezone(LOCAL_TZ)


def to_local_iso(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> str:
    """Convert datetime to the market timezone and return ISO string with offset."""
    return to_local(dt, naive_assumed_tz=naive_assumed_tz).isoformat()
