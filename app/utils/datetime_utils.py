"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- Calendar days (work_date) are taken in the configured business zone (BUSINESS_TZ).
"""
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc


def business_tz() -> ZoneInfo:
    return settings.business_zone


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for punch_in_at, punch_out_at, decided_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the business zone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(business_tz())


def local_date(dt: datetime) -> date:
    """Calendar day of dt in the business zone."""
    return to_local(dt).date()


def today_local(now: Optional[datetime] = None) -> date:
    return local_date(now or now_utc())


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with the business zone offset. Use for API response datetime fields."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day in [start, end]; empty when start > end."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
