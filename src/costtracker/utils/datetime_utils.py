"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from costtracker.utils.datetime_utils import utc_now

    # For SQLAlchemy Column defaults
    created_at = Column(DateTime, default=utc_now)
"""

from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an ISO date or datetime string into a date.

    Args:
        value: "2025-03-01" or "2025-03-01T10:00:00" (None passes through)

    Returns:
        date, or None when value is empty
    """
    if not value:
        return None
    if "T" in value:
        return datetime.fromisoformat(value).date()
    return date.fromisoformat(value)
