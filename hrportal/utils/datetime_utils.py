"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- API responses expose datetimes in the configured display timezone (settings.TZ).
"""
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for created_at, acted_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


@lru_cache(maxsize=None)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the display timezone. Naive datetimes are treated as UTC (SQLite drops tzinfo)."""
    from hrportal.core.config import settings

    if dt is None:
        return None
    return ensure_utc(dt).astimezone(_zone(settings.TZ))


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 in the display timezone with explicit offset. Use for API response datetimes."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def inclusive_days(start: date, end: date) -> int:
    """Calendar days from start to end, both inclusive"""
    return (end - start).days + 1
