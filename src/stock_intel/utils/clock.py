"""Wall-clock helpers. Components take a Clock so windows and TTLs are testable."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

Clock = Callable[[], datetime]

SECONDS_PER_WEEK = 7 * 24 * 60 * 60


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def days_before(now: datetime, days: int) -> datetime:
    """Start of a trailing window of `days` days ending at now."""
    return now - timedelta(days=days)


def whole_days(later: datetime, earlier: datetime) -> int:
    """Elapsed whole days between two timestamps (floored)."""
    return (later - earlier).days


def weeks_between(later: datetime, earlier: datetime) -> float:
    """Elapsed time between two timestamps in fractional weeks."""
    return (later - earlier).total_seconds() / SECONDS_PER_WEEK
