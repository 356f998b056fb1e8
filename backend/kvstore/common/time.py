"""
Time Utilities

Store policy:
- Relational rows keep expiry as integer Unix milliseconds, 0 meaning "never".
- Use UTC-aware datetimes at the record/API boundary.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

UTC = timezone.utc
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is UTC-aware.

    - If `dt` is naive, treat it as UTC.
    - If `dt` is timezone-aware, convert it to UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_epoch_ms(dt: Optional[datetime]) -> int:
    """
    Convert a datetime to Unix milliseconds for storage.

    `None` maps to the "never expires" sentinel 0. Sub-millisecond fractions
    are truncated, for stored expiries and "now" alike, so an expiry at or
    before "now" always compares as expired.
    """
    aware = ensure_utc(dt)
    if aware is None:
        return 0
    return max((aware - EPOCH) // timedelta(milliseconds=1), 1)


def from_epoch_ms(value: Optional[int]) -> Optional[datetime]:
    """Convert stored Unix milliseconds back to an aware datetime (0 -> None)."""
    if not value:
        return None
    return EPOCH + timedelta(milliseconds=value)
