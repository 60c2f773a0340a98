"""Datetime utilities for consistent timezone handling across the application."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Get current UTC time as naive datetime for database operations.

    Returns:
        Current datetime in UTC as naive datetime (no timezone info).

    Note:
        All DateTime columns are TIMESTAMP WITHOUT TIME ZONE holding UTC, so every
        value written to or compared against them must come from here.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_unix_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Convert a unix timestamp (as Stripe sends them) to a naive UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
