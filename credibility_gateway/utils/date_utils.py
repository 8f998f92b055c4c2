"""Date manipulation utilities"""

from datetime import date
from typing import List


def month_key(day: date) -> str:
    """Calendar month label, e.g. '2024-03'"""
    return f"{day.year:04d}-{day.month:02d}"


def generate_month_range(start: date, end: date) -> List[str]:
    """Generate list of month keys from start to end (inclusive)"""
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months


def shift_months(day: date, months: int) -> date:
    """First day of the month `months` away from day's month"""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_start(key: str) -> date:
    """Parse a month key back to the first day of that month"""
    year, month = key.split("-")
    return date(int(year), int(month), 1)
