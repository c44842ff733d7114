"""
Utility functions for date and time handling.
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo
IST = ZoneInfo("Asia/Kolkata")

def get_utc_now() -> datetime:
    """Current timezone-aware UTC datetime"""
    return datetime.now(timezone.utc)


def parse_datetime(value) -> datetime:
    """
    Parse an ISO string (or pass through a datetime) into an aware UTC datetime.
    Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def format_datetime_readable(dt: Optional[datetime]) -> Optional[str]:
    """
    Format datetime object to human readable format.

    Args:
        dt: datetime object to format

    Returns:
        Formatted string like "January 15, 2024 at 2:30 PM" or None if dt is None
    """
    if dt is None:
        return None
    return dt.strftime("%B %d, %Y at %I:%M %p")

def format_datetime_ist(dt: Optional[datetime]) -> Optional[str]:
    """Human readable IST rendering of a UTC (or naive UTC) datetime"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime_readable(dt.astimezone(IST))
