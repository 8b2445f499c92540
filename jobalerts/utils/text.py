"""Text helpers used when rendering notification emails."""

from datetime import datetime
from typing import Optional


def truncate_text(text: str, max_length: int = 500, suffix: str = "...") -> str:
    """Truncate text to maximum length, adding suffix if truncated.

    Tries to break at word boundaries for cleaner truncation.

    Args:
        text: Text to truncate
        max_length: Maximum length (including suffix)
        suffix: Suffix to add if truncated (default: ...)

    Returns:
        Truncated text with suffix if needed

    Example:
        >>> truncate_text("This is a very long text that needs truncating", max_length=30)
        'This is a very long text...'
    """
    if not text or len(text) <= max_length:
        return text

    truncate_at = max_length - len(suffix)

    if truncate_at <= 0:
        return suffix[:max_length]

    truncated = text[:truncate_at]

    # Only break at a space if it's not too far back
    last_space = truncated.rfind(" ")
    if last_space > truncate_at * 0.8:
        truncated = truncated[:last_space]

    return truncated.rstrip() + suffix


def format_salary(
    minimum: Optional[float],
    maximum: Optional[float],
    currency: str = "USD",
    period: Optional[str] = "yearly",
) -> str:
    """Format a salary range for display.

    Examples:
        >>> format_salary(90000, 120000)
        'USD 90,000 - 120,000 / yearly'
        >>> format_salary(90000, None)
        'USD 90,000+ / yearly'
        >>> format_salary(None, None)
        'Not specified'
    """
    if not minimum and not maximum:
        return "Not specified"

    low = f"{minimum:,.0f}" if minimum else ""
    high = f" - {maximum:,.0f}" if maximum else "+"
    if not minimum:
        high = f"up to {maximum:,.0f}"

    formatted = f"{currency} {low}{high}"
    return f"{formatted} / {period}" if period else formatted


def format_location(
    location_type: Optional[str],
    city: Optional[str] = None,
    country: Optional[str] = None,
) -> str:
    """Format a job location for display.

    Remote jobs render as "Remote"; everything else as "City, Country" with
    the location type appended when both parts are missing.
    """
    if location_type == "remote":
        return "Remote"

    parts = [part for part in (city, country) if part]
    if parts:
        return ", ".join(parts)

    return (location_type or "Unspecified").capitalize()


def format_date(dt: Optional[datetime]) -> str:
    """Format a datetime as a long date, e.g. 'November 4, 2025'."""
    if dt is None:
        return ""
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"
