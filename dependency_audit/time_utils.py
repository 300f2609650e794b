"""
Shared datetime helpers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


DAYS_PER_MONTH = 30.44


def ensure_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp and normalize it to UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def months_since(then: datetime, now: Optional[datetime] = None) -> float:
    """Elapsed months between two instants, using an average month length."""
    if now is None:
        now = utc_now()
    elapsed = ensure_utc(now) - ensure_utc(then)
    return elapsed / timedelta(days=1) / DAYS_PER_MONTH


def months_ago(months: float, now: Optional[datetime] = None) -> datetime:
    """Inverse of months_since."""
    if now is None:
        now = utc_now()
    return ensure_utc(now) - timedelta(days=months * DAYS_PER_MONTH)
