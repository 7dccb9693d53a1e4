"""Calendar-day helpers. All comparisons happen on UTC calendar days."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo), convert aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def calendar_day(dt: datetime | date) -> date:
    """Strip the time component."""
    if isinstance(dt, datetime):
        return as_utc(dt).date()
    return dt


def day_delta(a: datetime | date, b: datetime | date) -> int:
    """Absolute number of calendar days between two instants."""
    return abs((calendar_day(a) - calendar_day(b)).days)


def start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def end_of_day(d: date) -> datetime:
    return datetime.combine(d, time.max, tzinfo=timezone.utc)


def within_window(moment: datetime, start: date, end: date) -> bool:
    """True when moment lies in [start 00:00, end 23:59:59.999999]."""
    moment = as_utc(moment)
    return start_of_day(start) <= moment <= end_of_day(end)


def parse_date_override(raw: str | None) -> datetime | None:
    """Parse an ISO date/datetime override. Unparseable input yields None."""
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    return as_utc(parsed)


def days_until(target: datetime, now: datetime | None = None) -> int:
    """Whole days from the start of today until target, rounded up."""
    if now is None:
        now = utcnow()
    delta = as_utc(target) - start_of_day(calendar_day(now))
    return max(0, -(-delta // timedelta(days=1)))


def kept_streak_until(last_activity: datetime | None, end: datetime | date) -> bool:
    """True when the last recorded activity leaves no missed day before ``end``.

    A streak is still alive on ``end`` when the user was active on the day
    before it or later. No activity at all counts as lapsed.
    """
    if last_activity is None:
        return False
    return calendar_day(last_activity) >= calendar_day(end) - timedelta(days=1)
