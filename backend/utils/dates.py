"""Calendar-date helpers shared by pricing, availability and the client cache."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator, Union


DateLike = Union[str, date]

ISO_DATE_FORMAT = "%Y-%m-%d"


def parse_iso_date(value: DateLike) -> date:
    """Parse `YYYY-MM-DD` (or pass a date through). Raises ValueError."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), ISO_DATE_FORMAT).date()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every day from `start` to `end`, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
