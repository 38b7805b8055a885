"""Tests for date helpers."""
from datetime import datetime

from household_budget.utils.dates import (
    extract_date_from_timestamp,
    format_currency,
    format_date_for_storage,
    format_local_timestamp,
    get_calendar_year_months,
    get_month_date_range,
    get_previous_months,
    get_year_date_range,
    month_label,
    pad_month,
)


def test_pad_month():
    assert pad_month(3) == "03"
    assert pad_month(12) == "12"


def test_format_date_for_storage():
    now = datetime(2026, 10, 19, 15, 45, 32)
    assert format_date_for_storage("2026-02-01", now) == "2026-02-01 15:45:32"
    assert format_date_for_storage("2026-02-01T00:00:00", now) == "2026-02-01 15:45:32"


def test_extract_and_display():
    assert extract_date_from_timestamp("2026-02-01 15:45:32") == "2026-02-01"
    assert format_local_timestamp("2026-02-01 15:45:32") == "Feb 01, 2026"


def test_month_date_range_leap_year():
    assert get_month_date_range(2, 2024) == {"start_date": "2024-02-01", "end_date": "2024-02-29"}
    assert get_month_date_range(2, 2026)["end_date"] == "2026-02-28"
    assert get_month_date_range(12, 2026)["end_date"] == "2026-12-31"


def test_year_date_range():
    assert get_year_date_range(2026) == {"start_date": "2026-01-01", "end_date": "2026-12-31"}


def test_month_label():
    assert month_label(10, 2026) == "October 2026"


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-20) == "-$20.00"


def test_previous_months_cross_year():
    assert get_previous_months(3, 2026, 2) == [(2025, 12), (2026, 1), (2026, 2)]
    assert get_previous_months(6, 2026, 10) == [(2026, m) for m in range(5, 11)]


def test_calendar_year_months():
    assert get_calendar_year_months(2026, (2026, 3)) == [(2026, 1), (2026, 2), (2026, 3)]
    assert len(get_calendar_year_months(2025, (2026, 3))) == 12
