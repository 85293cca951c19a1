from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from ..core.constants import DEFAULT_TIMEZONE

ORG_TIMEZONE = ZoneInfo(DEFAULT_TIMEZONE)


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M").time()


def load_timezone(name: str | None) -> tzinfo:
    return ZoneInfo(name) if name else ORG_TIMEZONE


def now_utc() -> datetime:
    """Current instant (timezone-aware, UTC).

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)


def as_utc(instant: datetime) -> datetime:
    """Naive values coming back from the store are UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_local_date(instant: datetime, tz: tzinfo = ORG_TIMEZONE) -> date:
    """Organizational calendar date of an instant.

    This is the only place where a day boundary is computed; sessions,
    rollups and the ledger all go through it.
    """
    return as_utc(instant).astimezone(tz).date()


def local_today(tz: tzinfo = ORG_TIMEZONE, *, now: datetime | None = None) -> date:
    return to_local_date(now or now_utc(), tz)


def month_bounds(day: date) -> tuple[date, date]:
    first = day.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    return first, next_first - timedelta(days=1)


def within_window(moment: time, start: time, end: time) -> bool:
    """Inclusive time-of-day window; supports windows crossing midnight."""
    if start <= end:
        return start <= moment <= end
    return moment >= start or moment <= end
