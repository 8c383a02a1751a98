"""
Gap-filled time series for growth charts.

Grouped aggregation queries only return periods that contain records. The
helpers here expand such a sparse mapping into one bucket per calendar day or
month between two dates (inclusive), zero-filling the periods that are
missing.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import List, Literal, Mapping, Tuple, Union

from .models import StatisticsBucket

Granularity = Literal["day", "month"]
DayKey = Tuple[int, int, int]
MonthKey = Tuple[int, int]

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def shift_months(value: datetime, months: int) -> datetime:
    """
    Move ``value`` by a whole number of calendar months.

    The day is clamped to the length of the target month, so 31 March minus
    one month is 28/29 February.
    """

    month_index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def day_count(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    span = (_as_date(end) - _as_date(start)).days + 1
    return max(span, 0)


def month_count(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    span = (end.year - start.year) * 12 + (end.month - start.month) + 1
    return max(span, 0)


def month_label(year: int, month: int) -> str:
    return f"{MONTH_ABBREVIATIONS[month - 1]} {year}"


def daily_buckets(
    start: Union[date, datetime],
    end: Union[date, datetime],
    counts: Mapping[DayKey, int],
) -> List[StatisticsBucket]:
    first = _as_date(start)
    buckets: List[StatisticsBucket] = []
    for offset in range(day_count(start, end)):
        day = first + timedelta(days=offset)
        buckets.append(
            StatisticsBucket(period=day, count=int(counts.get((day.year, day.month, day.day), 0)))
        )
    return buckets


def monthly_buckets(
    start: Union[date, datetime],
    end: Union[date, datetime],
    counts: Mapping[MonthKey, int],
) -> List[StatisticsBucket]:
    buckets: List[StatisticsBucket] = []
    base_index = start.year * 12 + (start.month - 1)
    for offset in range(month_count(start, end)):
        year, month_zero = divmod(base_index + offset, 12)
        month = month_zero + 1
        buckets.append(
            StatisticsBucket(
                period=date(year, month, 1),
                count=int(counts.get((year, month), 0)),
                label=month_label(year, month),
            )
        )
    return buckets


def bucketize(
    start: Union[date, datetime],
    end: Union[date, datetime],
    granularity: Granularity,
    counts: Mapping[tuple, int],
) -> List[StatisticsBucket]:
    if granularity == "day":
        return daily_buckets(start, end, counts)
    if granularity == "month":
        return monthly_buckets(start, end, counts)
    raise ValueError(f"Unsupported granularity: {granularity!r}")
