from __future__ import annotations

from calendar import monthrange
from collections.abc import Collection, Iterable, Iterator
from datetime import date, datetime, timedelta

SATURDAY = 5
SUNDAY = 6


def format_local_date(value: date | datetime | str | None) -> str:
    """Return ``YYYY-MM-DD`` for a naive local date, or ``""`` when it cannot be read."""
    parsed = parse_local_date(value)
    if parsed is None:
        return ""
    return parsed.isoformat()


def parse_local_date(value: date | datetime | str | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        # Wall-clock date; never shift through UTC.
        return value.date()
    if isinstance(value, date):
        return value
    raw = value.strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def month_bounds(year: int, month: int) -> tuple[date, date, int]:
    days_in_month = monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, days_in_month), days_in_month


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def iter_days(start: date, end: date) -> Iterator[date]:
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def is_non_working_day(day: date, holidays: Collection[date]) -> bool:
    return is_weekend(day) or day in holidays


def count_business_days(start: date, end: date, holidays: Collection[date]) -> int:
    return sum(1 for day in iter_days(start, end) if not is_non_working_day(day, holidays))


def count_calendar_days(start: date, end: date) -> int:
    if end < start:
        return 0
    return (end - start).days + 1


def clip_range(start: date, end: date, window_start: date, window_end: date) -> tuple[date, date] | None:
    clipped_start = max(start, window_start)
    clipped_end = min(end, window_end)
    if clipped_end < clipped_start:
        return None
    return clipped_start, clipped_end


def collapse_to_ranges(days: Iterable[date]) -> list[tuple[date, date]]:
    """Group a set of days into sorted, inclusive, non-adjacent ranges."""
    ranges: list[tuple[date, date]] = []
    for day in sorted(set(days)):
        if ranges and ranges[-1][1] + timedelta(days=1) == day:
            ranges[-1] = (ranges[-1][0], day)
        else:
            ranges.append((day, day))
    return ranges


def thai_fiscal_year(year: int, month: int) -> int:
    """Thai government fiscal year (Buddhist era); October opens the next year."""
    buddhist_year = year + 543
    if month >= 10:
        return buddhist_year + 1
    return buddhist_year
