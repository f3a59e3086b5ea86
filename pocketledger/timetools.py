"""Calendar helpers: day, week, month and year boundaries and range splitting."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

_log = logging.getLogger(__name__)

_SECOND = timedelta(seconds=1)
_DAY = timedelta(days=1)
_MAX_YEARS = 100
_MAX_WEEKS = 1000


def to_day(moment: datetime) -> datetime:
    """Return midnight of the day that holds ``moment``."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def first_second_of_day(moment: datetime) -> datetime:
    """Return the first instant of the day that holds ``moment``."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def last_second_of_day(moment: datetime) -> datetime:
    """Return the last representable instant of the day that holds ``moment``."""
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def first_second_of_month(moment: datetime) -> datetime:
    """Return midnight of the first day of the month that holds ``moment``."""
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def last_second_of_month(moment: datetime) -> datetime:
    """Return one second before the start of the following month."""
    if moment.month == 12:
        following = moment.replace(
            year=moment.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0
        )
    else:
        following = moment.replace(
            month=moment.month + 1, day=1, hour=0, minute=0, second=0, microsecond=0
        )
    return following - _SECOND


def first_second_of_week(moment: datetime) -> datetime:
    """Return midnight of the Monday that starts the week of ``moment``."""
    return to_day(moment - timedelta(days=moment.weekday()))


def last_second_of_week(moment: datetime) -> datetime:
    """Return 23:59:59 of the Sunday that ends the week of ``moment``."""
    sunday = moment + timedelta(days=6 - moment.weekday())
    return sunday.replace(hour=23, minute=59, second=59, microsecond=0)


def first_second_of_year(moment: datetime) -> datetime:
    """Return midnight of January 1st in the year of ``moment``."""
    return moment.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def last_second_of_year(moment: datetime) -> datetime:
    """Return 23:59:59 of December 31st in the year of ``moment``."""
    return moment.replace(month=12, day=31, hour=23, minute=59, second=59, microsecond=0)


def split_months(start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
    """Split ``start``..``end`` into consecutive month-bounded ranges."""
    months: list[tuple[datetime, datetime]] = []
    current = start
    while current != end:
        current = min(last_second_of_month(start), end)
        months.append((start, current))
        start = current + _SECOND
    return months


def split_days(start: datetime, end: datetime) -> list[datetime]:
    """Return the midnight of every day from the day of ``start`` up to ``end``."""
    days: list[datetime] = []
    current = to_day(start)
    while current <= end:
        days.append(current)
        current += _DAY
    return days


def split_years(start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
    """Split ``start``..``end`` into consecutive year-bounded ranges."""
    years: list[tuple[datetime, datetime]] = []
    current = start
    while current < end:
        year_end = min(last_second_of_year(current), end)
        years.append((current, year_end))
        current = year_end + _SECOND
        if len(years) > _MAX_YEARS:
            _log.warning("split_years: too many ranges, stopping")
            break
    return years


def split_weeks(start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
    """Split ``start``..``end`` into consecutive ranges ending on Sundays."""
    weeks: list[tuple[datetime, datetime]] = []
    current = start
    while current < end:
        week_end = min(last_second_of_week(current), end)
        weeks.append((current, week_end))
        current = week_end + _SECOND
        if len(weeks) > _MAX_WEEKS:
            _log.warning("split_weeks: too many ranges, stopping")
            break
    return weeks