"""
Utility functions for discshelf.

This module provides small helpers used across the application:
    - Clock and timezone helpers (UTC now, offset-hours to tzinfo)
    - Display formatting for label/format lists and timestamps
    - Directory creation
    - Exponential backoff for retried remote requests

Usage:
    from discshelf.utils import (
        utc_now,
        timezone_from_offset,
        format_list,
        ensure_directory,
        calculate_backoff
    )
"""

import random
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path


# Backoff parameters for retried page fetches
BASE_DELAY = 1.0
MAX_DELAY = 30.0
JITTER_FACTOR = 0.3

# Display format for dates, e.g. "Monday 05 08 2019 14:02"
DISPLAY_DATE_FORMAT = "%A %d %m %Y %H:%M"


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def timezone_from_offset(hours: float) -> tzinfo:
    """
    Convert an hours offset from UTC into a fixed tzinfo.

    Args:
        hours: Offset in hours, may be fractional (e.g. 5.5 for IST)
               or negative (e.g. -8 for PST).

    Returns:
        A datetime.timezone with the given offset.

    Example:
        timezone_from_offset(8)     # UTC+08:00
        timezone_from_offset(-3.5)  # UTC-03:30
    """
    return timezone(timedelta(seconds=round(hours * 3600)))


def format_list(items) -> str:
    """Join label/format names for display, e.g. "Vinyl, CD"."""
    return ", ".join(items) if items else "-"


def format_timestamp(moment: datetime, tz: tzinfo | None = None) -> str:
    """Format an aware datetime for display in the given timezone."""
    if tz is not None:
        moment = moment.astimezone(tz)
    return moment.strftime(DISPLAY_DATE_FORMAT)


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory.

    Returns:
        The same path (for chaining).

    Raises:
        OSError: If directory cannot be created (permissions, etc.)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def calculate_backoff(attempt: int, base_delay: float = BASE_DELAY) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        attempt: Current attempt number (0-indexed).
        base_delay: Base delay in seconds.

    Returns:
        Delay in seconds with jitter applied. Zero when base_delay is zero,
        which lets tests disable waiting entirely.
    """
    if base_delay <= 0:
        return 0.0

    # Exponential backoff: 2^attempt * base_delay
    delay = min(base_delay * (2 ** attempt), MAX_DELAY)

    # Add jitter: ±30% randomness
    jitter = delay * JITTER_FACTOR * (2 * random.random() - 1)

    return max(0.1, delay + jitter)
