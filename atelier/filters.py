"""
Date presets and period labels for the sales filters.

Presets are computed in UTC so "today" matches how the store interprets
date-only strings.
"""
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

DATE_PRESETS = ("last7", "thisMonth", "lastMonth", "last3Months", "last12Months")


@dataclass
class DateRange:
    """Represents a date range with both date objects and string formats."""
    start: date
    end: date

    @property
    def start_str(self) -> str:
        """Start date as YYYY-MM-DD string."""
        return self.start.isoformat()

    @property
    def end_str(self) -> str:
        """End date as YYYY-MM-DD string."""
        return self.end.isoformat()

    def as_str_tuple(self) -> Tuple[str, str]:
        """Return as (start, end) tuple of strings."""
        return (self.start_str, self.end_str)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _first_of_month(day: date, months_back: int = 0) -> date:
    index = day.year * 12 + (day.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def _last_of_month(day: date) -> date:
    return day.replace(day=monthrange(day.year, day.month)[1])


def date_range_from_preset(preset: str, reference_date: Optional[date] = None) -> DateRange:
    """
    Resolve a preset name into a date range ending today (or last month).

    Args:
        preset: One of last7, thisMonth, lastMonth, last3Months, last12Months
        reference_date: Date treated as today (default: current UTC date)

    Returns:
        DateRange

    Raises:
        ValueError: If the preset is unknown

    Examples:
        >>> date_range_from_preset("lastMonth", date(2026, 3, 15))
        DateRange(start=datetime.date(2026, 2, 1), end=datetime.date(2026, 2, 28))
    """
    today = reference_date or utc_today()

    if preset == "last7":
        return DateRange(today - timedelta(days=6), today)

    elif preset == "thisMonth":
        return DateRange(_first_of_month(today), today)

    elif preset == "lastMonth":
        start = _first_of_month(today, months_back=1)
        return DateRange(start, _last_of_month(start))

    elif preset == "last3Months":
        return DateRange(_first_of_month(today, months_back=2), today)

    elif preset == "last12Months":
        return DateRange(_first_of_month(today, months_back=11), today)

    raise ValueError(f"Unknown date preset: {preset!r}")


def get_preset_label(preset: str) -> str:
    """Human-readable label for a preset button."""
    labels = {
        "last7": "Last 7 days",
        "thisMonth": "This month",
        "lastMonth": "Last month",
        "last3Months": "Last 3 months",
        "last12Months": "Last 12 months",
    }
    return labels.get(preset, preset)


def format_display_date(day: date) -> str:
    return f"{day:%b} {day.day}, {day.year}"


def format_compact_date(day: date) -> str:
    return f"{day:%b} {day.day}"


def _whole_months_between(start: date, end: date) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months


def format_period_info(from_date: str = "", to_date: str = "") -> str:
    """
    Describe the selected period for the summary header.

    "Mar 3, 2026", "5 days", "Mar 3 - Mar 20, 2026", "February 2026",
    "Since Mar 3, 2026", "Until ...", or "All time".
    """
    if from_date and to_date:
        try:
            start = date.fromisoformat(from_date)
            end = date.fromisoformat(to_date)
        except ValueError:
            return "Selected period"

        days = (end - start).days + 1
        months = _whole_months_between(start, end)

        if days <= 1:
            return format_display_date(start)
        if days <= 7:
            return f"{days} days"
        if start.day == 1 and end == _last_of_month(start):
            return f"{start:%B %Y}"
        if months < 1:
            return f"{format_compact_date(start)} - {format_display_date(end)}"
        return f"{format_display_date(start)} - {format_display_date(end)}"

    if from_date:
        try:
            return f"Since {format_display_date(date.fromisoformat(from_date))}"
        except ValueError:
            return "Since selected date"

    if to_date:
        try:
            return f"Until {format_display_date(date.fromisoformat(to_date))}"
        except ValueError:
            return "Until selected date"

    return "All time"
