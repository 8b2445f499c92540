"""Utility functions for time handling and text formatting."""

from .text import format_date, format_location, format_salary, truncate_text
from .timestamps import (
    ensure_utc,
    subtract_months,
    utc_now,
)

__all__ = [
    # Timestamps
    "utc_now",
    "ensure_utc",
    "subtract_months",
    # Text
    "truncate_text",
    "format_salary",
    "format_location",
    "format_date",
]
