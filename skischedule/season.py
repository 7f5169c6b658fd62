"""
Date arithmetic: week, month and ski-season boundaries.

All functions are pure and work on naive calendar dates (datetime.date).
Ranges are closed on both ends: (start, end) both included.

A season runs from November 1 of year Y to April 30 of year Y+1.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Tuple

DateRange = Tuple[date, date]

SEASON_START_MONTH = 11
SEASON_END_MONTH = 4
SEASON_END_DAY = 30

_WEEKDAYS_ZH = ["周一", "周二", "周三", "周四", "周五", "周六", "周日"]


def to_date_string(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def parse_date_string(value: str) -> date:
    """
    Parse 'YYYY-MM-DD' into a date.
    Raises ValueError for any other format.
    """
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def season_start_year(d: date) -> int:
    """November and December belong to the season starting that year, everything else to the previous one."""
    return d.year if d.month >= SEASON_START_MONTH else d.year - 1


def day_range(d: date) -> DateRange:
    return d, d


def week_range(d: date) -> DateRange:
    """Monday..Sunday of the week containing d."""
    start = d - timedelta(days=d.isoweekday() - 1)
    return start, start + timedelta(days=6)


def month_range(d: date) -> DateRange:
    last_day = calendar.monthrange(d.year, d.month)[1]
    return d.replace(day=1), d.replace(day=last_day)


def season_range(d: date) -> DateRange:
    year = season_start_year(d)
    return date(year, SEASON_START_MONTH, 1), date(year + 1, SEASON_END_MONTH, SEASON_END_DAY)


def span_range(start: date, days: int) -> DateRange:
    """
    N consecutive days starting at (and including) start.
    Raises ValueError if days < 1.
    """
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")
    return start, start + timedelta(days=days - 1)


def format_date_zh(d: date) -> str:
    """'M月D日' without zero padding, e.g. 11月1日."""
    return f"{d.month}月{d.day}日"


def format_date_zh_long(d: date) -> str:
    return f"{d.year}年{format_date_zh(d)}"


def format_weekday_zh(d: date) -> str:
    return _WEEKDAYS_ZH[d.weekday()]
