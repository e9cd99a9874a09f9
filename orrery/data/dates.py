# orrery/data/dates.py
from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Tuple, Union

DateLike = Union[str, date, datetime]

DAY = timedelta(days=1)


def parse_date(value: DateLike) -> date:
    """
    Accept 'YYYY-MM-DD' (or a full ISO timestamp), date or datetime.
    Raises ValueError on anything malformed.
    """
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date: {value!r}")

    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00"))).date()
    except ValueError as e:
        raise ValueError(f"Invalid date: {value!r}") from e


def iso_date(value: DateLike) -> str:
    return parse_date(value).isoformat()


def as_utc(dt: datetime) -> datetime:
    # naive -> treat as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_day(value: DateLike) -> datetime:
    return datetime.combine(parse_date(value), time(0, 0), tzinfo=timezone.utc)


def validate_range(start: DateLike, end: DateLike) -> Tuple[date, date]:
    s = parse_date(start)
    e = parse_date(end)
    if e < s:
        raise ValueError(f"End date ({e.isoformat()}) is before start date ({s.isoformat()})")
    return s, e


def dates_between(start: DateLike, end: DateLike) -> List[str]:
    """
    Inclusive list of ISO dates from start to end.
    """
    s, e = validate_range(start, end)
    out = []
    cur = s
    while cur <= e:
        out.append(cur.isoformat())
        cur += DAY
    return out


def add_months(value: DateLike, months: int) -> date:
    d = parse_date(value)
    idx = d.month - 1 + int(months)
    year = d.year + idx // 12
    month = idx % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
