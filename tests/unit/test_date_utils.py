"""Unit tests for date and formatting helpers"""

from datetime import date
from credibility_gateway.utils.date_utils import generate_month_range, month_key, month_start, shift_months
from credibility_gateway.utils.formatting import format_amount, format_percent


def test_month_key():
    assert month_key(date(2024, 3, 9)) == "2024-03"


def test_generate_month_range_crosses_year():
    assert generate_month_range(date(2023, 11, 20), date(2024, 2, 1)) == ["2023-11", "2023-12", "2024-01", "2024-02"]


def test_generate_month_range_single_month():
    assert generate_month_range(date(2024, 5, 1), date(2024, 5, 31)) == ["2024-05"]


def test_shift_months():
    assert shift_months(date(2024, 1, 31), -1) == date(2023, 12, 1)
    assert shift_months(date(2024, 11, 15), 3) == date(2025, 2, 1)
    assert shift_months(date(2024, 6, 30), 0) == date(2024, 6, 1)


def test_month_start():
    assert month_start("2024-07") == date(2024, 7, 1)


def test_formatting():
    assert format_amount(123_456) == "1,234.56"
    assert format_amount(0) == "0.00"
    assert format_percent(0.125) == "12.5%"
