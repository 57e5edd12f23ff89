"""
Standardized Date/Time Handling Utilities

RULES:
- Always store timestamps as UTC (use to_utc())
- Decide "which day" in the user's timezone (use local_date())
- Never mix naive and aware datetimes
"""

import logging
from datetime import datetime, date, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Default timezone if user hasn't set one
DEFAULT_TIMEZONE = "UTC"


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    """
    Resolve an IANA timezone name, falling back to UTC

    Args:
        tz_name: IANA timezone (e.g. "Europe/Stockholm"), or None

    Returns:
        ZoneInfo object
    """
    try:
        return ZoneInfo(tz_name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.error(f"Invalid timezone '{tz_name}': {e}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_utc() -> datetime:
    """Current datetime in UTC (timezone-aware)"""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def local_date(dt: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar date of a timestamp as seen in the given timezone"""
    return to_utc(dt).astimezone(get_zone(tz_name)).date()


def is_same_day(dt1: datetime, dt2: datetime, tz_name: Optional[str] = None) -> bool:
    """Check whether two timestamps fall on the same local day"""
    return local_date(dt1, tz_name) == local_date(dt2, tz_name)


def format_relative_time(dt: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Short "last active" label

    Examples:
        "Active just now", "Active 5m ago", "Active 3h ago", "Active 2d ago"
    """
    if dt is None:
        return "Active recently"

    now = to_utc(now) if now else now_utc()
    seconds = max(int((now - to_utc(dt)).total_seconds()), 0)

    if seconds < 60:
        return "Active just now"
    if seconds < 3600:
        return f"Active {seconds // 60}m ago"
    if seconds < 86400:
        return f"Active {seconds // 3600}h ago"
    return f"Active {seconds // 86400}d ago"
