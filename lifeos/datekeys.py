from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from lifeos.errors import ValidationError

DAY_KEYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def parse_day(value) -> date:
    """Accept a date, a datetime or an ISO `YYYY-MM-DD` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value or "").strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {raw!r}", field="date") from exc


def to_key(value) -> str:
    return parse_day(value).isoformat()


def week_start(value) -> date:
    day = parse_day(value)
    return day - timedelta(days=day.weekday())


def shift_days(value, days: int) -> date:
    return parse_day(value) + timedelta(days=days)


def start_of_day(value) -> str:
    return f"{to_key(value)}T00:00:00"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds")


def today() -> date:
    """Current calendar date in UTC, the zone `utc_now_iso` stamps in."""
    return datetime.now(timezone.utc).date()
