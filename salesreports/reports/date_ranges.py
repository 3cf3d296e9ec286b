"""
Report Date Ranges

Named relative windows a report can be requested for, and the calendar
helpers the aggregation uses to bucket and compare periods.

All datetimes here are naive and expressed in report-local time.

Month, quarter and year windows end at the end of today rather than at the
end of the nominal period, so "this month" always includes today's sales.
"""

import calendar
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterator, Optional, Tuple, Union
from zoneinfo import ZoneInfo

ONE_DAY = timedelta(days=1)


class DateRangeKind(str, Enum):
    """Supported report windows"""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value: Union[str, "DateRangeKind", None]) -> "DateRangeKind":
        """Parse a range name, falling back to MONTH for unknown values"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MONTH


RANGE_LABELS = {
    DateRangeKind.TODAY: "Today",
    DateRangeKind.WEEK: "Last 7 Days",
    DateRangeKind.MONTH: "This Month",
    DateRangeKind.QUARTER: "Last 3 Months",
    DateRangeKind.YEAR: "Last 12 Months",
}


@dataclass(frozen=True)
class DateRange:
    """Inclusive report window"""
    start_date: datetime
    end_date: datetime
    label: str
    kind: DateRangeKind = DateRangeKind.MONTH

    @property
    def length(self) -> timedelta:
        return self.end_date - self.start_date

    def contains(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def start_of_month(moment: datetime) -> datetime:
    return start_of_day(moment).replace(day=1)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Move back whole calendar months, clamping the day to the target month"""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_date_range(
    kind: Union[str, DateRangeKind, None],
    now: Optional[datetime] = None,
) -> DateRange:
    """
    Resolve a named window relative to ``now``.

    Args:
        kind: Range name; unknown names resolve like "month"
        now: Reference moment (defaults to the current local time)

    Returns:
        DateRange with inclusive start and end
    """
    kind = DateRangeKind.parse(kind)
    today = now or local_now()
    end_date = end_of_day(today)

    if kind == DateRangeKind.TODAY:
        start_date = start_of_day(today)
    elif kind == DateRangeKind.WEEK:
        start_date = start_of_day(today - timedelta(days=7))
    elif kind == DateRangeKind.QUARTER:
        start_date = start_of_month(subtract_months(today, 3))
    elif kind == DateRangeKind.YEAR:
        start_date = start_of_month(subtract_months(today, 12))
    else:
        start_date = start_of_month(today)

    return DateRange(
        start_date=start_date,
        end_date=end_date,
        label=RANGE_LABELS[kind],
        kind=kind,
    )


def iter_days(start: datetime, end: datetime) -> Iterator[datetime]:
    """Yield one moment per day from ``start`` while it does not pass ``end``"""
    current = start
    while current <= end:
        yield current
        current += ONE_DAY


def days_in_range(start: datetime, end: datetime) -> int:
    """Per-day metric denominator: whole days covered, at least 1"""
    return max(1, math.ceil((end - start) / ONE_DAY))


def previous_period(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """The window of identical length immediately preceding ``start``"""
    length = end - start
    return start - length, end - length


def get_zone(name: Optional[str]) -> Optional[tzinfo]:
    """Zone for report-local calendar days; None means the system local zone"""
    if not name:
        return None
    return ZoneInfo(name)


def local_now(tz: Optional[tzinfo] = None) -> datetime:
    """Current naive report-local time"""
    return datetime.now(tz).replace(tzinfo=None)
