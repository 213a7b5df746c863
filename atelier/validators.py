"""
Input validation functions for API parameters.

All validators raise ValidationError on invalid input.
"""
from datetime import date, datetime
from typing import Optional, Tuple

from atelier.config import config
from atelier.exceptions import ValidationError
from atelier.filters import DATE_PRESETS

IDENTIFIER_KINDS = {"instrument", "client"}


def validate_date_string(
    value: str,
    field: str = "date",
    format: str = "%Y-%m-%d"
) -> date:
    """
    Validate and parse a date string.

    Args:
        value: Date string to validate
        field: Field name for error messages
        format: Expected date format (default: YYYY-MM-DD)

    Returns:
        Parsed date object

    Raises:
        ValidationError: If date is invalid or in wrong format
    """
    if not value:
        raise ValidationError(field, "Date is required", value)

    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string", value)

    try:
        return datetime.strptime(value, format).date()
    except ValueError:
        raise ValidationError(
            field,
            f"Invalid date format. Expected {format}",
            value
        )


def validate_optional_date_range(
    from_date: Optional[str],
    to_date: Optional[str],
) -> Tuple[Optional[date], Optional[date]]:
    """
    Validate an open-ended date range.

    Either bound may be missing; when both are given, from must not be
    after to.

    Returns:
        (from, to) as dates or None

    Raises:
        ValidationError: If a date is malformed or the range is inverted
    """
    start = validate_date_string(from_date, "from") if from_date else None
    end = validate_date_string(to_date, "to") if to_date else None

    if start and end and start > end:
        raise ValidationError(
            "date_range",
            "Start date must be before or equal to end date",
            f"{from_date} to {to_date}"
        )

    return start, end


def validate_sort_column(value: Optional[str], field: str = "sortColumn") -> str:
    """
    Validate a sort column, defaulting when empty.

    Raises:
        ValidationError: If the column cannot be sorted on
    """
    if not value:
        return config.filters.default_sort_column

    if value not in config.filters.sortable_columns:
        raise ValidationError(
            field,
            f"Must be one of: {', '.join(config.filters.sortable_columns)}",
            value
        )

    return value


def validate_sort_direction(value: Optional[str], field: str = "sortDirection") -> str:
    """Validate asc/desc, defaulting when empty."""
    if not value:
        return config.filters.default_sort_direction

    value = value.lower().strip()
    if value not in ("asc", "desc"):
        raise ValidationError(field, "Must be 'asc' or 'desc'", value)

    return value


def validate_has_client(value: Optional[str], field: str = "hasClient") -> Optional[bool]:
    """Parse the tri-state client filter ("true", "false" or absent)."""
    if value is None or value == "":
        return None

    lowered = value.lower().strip()
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    raise ValidationError(field, "Must be 'true' or 'false'", value)


def validate_preset(value: str, field: str = "preset") -> str:
    """Validate a date preset name."""
    if value not in DATE_PRESETS:
        raise ValidationError(
            field,
            f"Must be one of: {', '.join(DATE_PRESETS)}",
            value
        )
    return value


def validate_limit(
    value: int,
    field: str = "limit",
    min_value: int = 1,
    max_value: int = config.store.max_page_limit
) -> int:
    """
    Validate a limit/count parameter.

    Raises:
        ValidationError: If limit is out of range
    """
    if not isinstance(value, int):
        raise ValidationError(field, "Must be an integer", value)

    if value < min_value:
        raise ValidationError(field, f"Must be at least {min_value}", value)

    if value > max_value:
        raise ValidationError(field, f"Cannot exceed {max_value}", value)

    return value


def validate_identifier_kind(value: str, field: str = "kind") -> str:
    """Validate which identifier sequence is requested."""
    if value not in IDENTIFIER_KINDS:
        raise ValidationError(
            field,
            f"Must be one of: {', '.join(sorted(IDENTIFIER_KINDS))}",
            value
        )
    return value


def validate_gap_fill_range(
    start: Optional[date],
    end: Optional[date],
    field: str = "fillGaps",
    max_days: int = config.charts.max_gap_fill_days,
) -> None:
    """Reject zero-filling a date range wider than max_days."""
    if start is None or end is None:
        return

    span = (end - start).days + 1
    if span > max_days:
        raise ValidationError(
            field,
            f"Date range too wide to fill gaps (max {max_days} days)",
            span
        )


def validate_instrument_id(value: Optional[str], field: str = "instrument_id") -> Optional[str]:
    """Validate an instrument id filter; blank means no filter."""
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    if len(value) > 64 or not all(ch.isalnum() or ch in "-_" for ch in value):
        raise ValidationError(field, "Invalid instrument_id format", value)

    return value
