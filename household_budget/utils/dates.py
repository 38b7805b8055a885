"""Date helpers.

Storage format for user-entered dates is a local timestamp
``YYYY-MM-DD HH:MM:SS`` (the entered date plus the current local time).
Audit columns use UTC timestamps in the same shape, matching SQLite's
``CURRENT_TIMESTAMP``.
"""
import calendar
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

STORAGE_FORMAT = "%Y-%m-%d %H:%M:%S"


def pad_month(month: int) -> str:
    """Zero-pad a month number: 3 -> '03'."""
    return f"{int(month):02d}"


def format_date_for_storage(date_string: str, now: Optional[datetime] = None) -> str:
    """Combine a form date (YYYY-MM-DD) with the current local time.

    Example: "2026-02-01" entered at 15:45:32 -> "2026-02-01 15:45:32"
    """
    now = now or datetime.now()
    date_part = date_string.strip().split(" ")[0].split("T")[0]
    return f"{date_part} {now:%H:%M:%S}"


def extract_date_from_timestamp(timestamp: str) -> str:
    """Return the date portion of a stored timestamp."""
    return timestamp.split(" ")[0].split("T")[0]


def format_local_timestamp(timestamp: str) -> str:
    """Format a stored timestamp for display: 'Feb 01, 2026'."""
    parsed = datetime.strptime(extract_date_from_timestamp(timestamp), "%Y-%m-%d")
    return f"{calendar.month_abbr[parsed.month]} {parsed.day:02d}, {parsed.year}"


def get_month_date_range(month: int, year: int) -> Dict[str, str]:
    """First and last day of a month as YYYY-MM-DD strings."""
    last_day = calendar.monthrange(year, month)[1]
    return {
        "start_date": f"{year}-{pad_month(month)}-01",
        "end_date": f"{year}-{pad_month(month)}-{last_day:02d}",
    }


def get_year_date_range(year: int) -> Dict[str, str]:
    """First and last day of a calendar year."""
    return {"start_date": f"{year}-01-01", "end_date": f"{year}-12-31"}


def get_previous_months(count: int, year: int, month: int) -> List[Tuple[int, int]]:
    """The `count` (year, month) pairs ending at year/month, oldest first.

    Example: get_previous_months(3, 2026, 2) -> [(2025, 12), (2026, 1), (2026, 2)]
    """
    months = []
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            month, year = 12, year - 1
    return list(reversed(months))


def get_calendar_year_months(year: int, today: Tuple[int, int]) -> List[Tuple[int, int]]:
    """(year, month) pairs for a calendar year; the current year stops at today's month."""
    today_year, today_month = today
    last_month = today_month if year == today_year else 12
    return [(year, m) for m in range(1, last_month + 1)]


def get_current_utc_timestamp() -> str:
    """Current UTC time in SQLite CURRENT_TIMESTAMP format."""
    return datetime.now(timezone.utc).strftime(STORAGE_FORMAT)


def month_label(month: int, year: int) -> str:
    """Human-readable month label: 'October 2026'."""
    return f"{calendar.month_name[month]} {year}"


def format_currency(amount: float) -> str:
    """Format an amount as dollars: 1234.5 -> '$1,234.50'."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
