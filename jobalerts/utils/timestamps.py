"""Timestamp utilities for UTC handling and calendar arithmetic.

This module provides utilities for working with timestamps in UTC:
- Getting current UTC time
- Converting timezone-naive to timezone-aware UTC
- Calendar month arithmetic for alert windows
"""

import calendar
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info

    Example:
        >>> now = utc_now()
        >>> now.tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    If the datetime is timezone-naive, it's treated as UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    # If timezone-naive, treat as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def subtract_months(dt: datetime, months: int) -> datetime:
    """Move a datetime back by a number of calendar months.

    The day of month is clamped to the length of the target month, so
    March 31st minus one month is the last day of February.

    Args:
        dt: Datetime to shift
        months: Number of months to go back (must be >= 0)

    Returns:
        Shifted datetime with the same time of day and timezone

    Example:
        >>> from datetime import datetime, timezone
        >>> subtract_months(datetime(2025, 3, 31, tzinfo=timezone.utc), 1).day
        28
    """
    if months < 0:
        raise ValueError(f"months must be non-negative, got: {months}")

    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))
