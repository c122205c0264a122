"""
Date helpers shared by the API schemas, the service layer and the client.

Investment start/end dates have date-only semantics: whatever the caller
sends is stored as midnight UTC of that calendar day.
"""

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def midnight_utc(value: date) -> datetime:
    """Truncate a date or datetime to midnight UTC of its (UTC) calendar day."""
    if isinstance(value, datetime):
        value = as_utc(value).date()
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def parse_date_input(raw: str) -> Optional[datetime]:
    """
    Parse a ``YYYY-MM-DD`` string as entered in a date widget.

    Returns ``None`` for blank or unparsable input.
    """
    try:
        return midnight_utc(date.fromisoformat(raw.strip()))
    except ValueError:
        return None
