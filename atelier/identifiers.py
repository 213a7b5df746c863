"""
Human-readable identifiers for instruments and clients.

Identifiers look like ``<PREFIX><ordinal>`` (``VI003``, ``CL012``). The next
ordinal is derived from the identifiers already in use, so callers must pass
the complete current list to avoid collisions.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from atelier.config import config

_TRAILING_DIGITS = re.compile(r"(\d+)$")
_IDENTIFIER_FORMAT = re.compile(r"^[A-Z0-9]{1,%d}$" % config.identifiers.max_length)


@dataclass(frozen=True)
class IdentifierCheck:
    """Outcome of validate_unique_number."""
    valid: bool
    error: Optional[str] = None

    def to_dict(self):
        data = {"valid": self.valid}
        if self.error:
            data["error"] = self.error
        return data


def instrument_prefix(instrument_type: Optional[str]) -> str:
    """
    Map an instrument classification to its two-letter prefix.

    Matching is case-insensitive and by substring, so "Violin 4/4" and
    "바이올린" both resolve to "VI". Unknown or empty types get the default.
    """
    if not instrument_type:
        return config.identifiers.default_prefix

    normalized = instrument_type.lower().strip()
    for keywords, prefix in config.identifiers.instrument_prefixes:
        if any(keyword in normalized for keyword in keywords):
            return prefix

    return config.identifiers.default_prefix


def _ordinal(identifier: str) -> int:
    match = _TRAILING_DIGITS.search(identifier.strip())
    return int(match.group(1)) if match else 0


def next_identifier(prefix: str, existing: Iterable[Optional[str]]) -> str:
    """
    Next free identifier for a prefix.

    Args:
        prefix: Identifier prefix, e.g. "VI"
        existing: Identifiers already assigned (None/empty entries ignored)

    Returns:
        Prefix followed by max(existing ordinal) + 1, padded to at least
        three digits. Wider ordinals are never truncated ("VI1000").
    """
    prefix = prefix.upper()
    ordinals = [
        _ordinal(number)
        for number in existing
        if number and number.strip().upper().startswith(prefix)
    ]
    next_number = max(ordinals, default=0) + 1
    return f"{prefix}{next_number:0{config.identifiers.min_digits}d}"


def generate_instrument_serial(
    instrument_type: Optional[str],
    existing: Iterable[Optional[str]] = (),
) -> str:
    """Next serial number for an instrument of the given type."""
    return next_identifier(instrument_prefix(instrument_type), existing)


def generate_client_number(existing: Iterable[Optional[str]] = ()) -> str:
    """Next client number (CL001, CL002, ...)."""
    return next_identifier(config.identifiers.client_prefix, existing)


def validate_unique_number(
    number: Optional[str],
    existing: Iterable[Optional[str]] = (),
    current: Optional[str] = None,
) -> IdentifierCheck:
    """
    Check a user-entered identifier.

    Args:
        number: Candidate identifier (optional field, blank is valid)
        existing: Identifiers already in use
        current: Identifier the edited record already holds; not a conflict

    Returns:
        IdentifierCheck; never raises.
    """
    if not number or not number.strip():
        return IdentifierCheck(valid=True)

    candidate = number.strip().upper()
    current_normalized = format_unique_number(current)

    is_duplicate = any(
        other
        and other.strip().upper() == candidate
        and other.strip().upper() != current_normalized
        for other in existing
    )
    if is_duplicate:
        return IdentifierCheck(valid=False, error="This identifier is already in use.")

    if not _IDENTIFIER_FORMAT.match(candidate):
        return IdentifierCheck(
            valid=False,
            error=(
                "Identifiers may only contain letters and digits "
                f"and be at most {config.identifiers.max_length} characters."
            ),
        )

    return IdentifierCheck(valid=True)


def format_unique_number(number: Optional[str]) -> str:
    """Trim and upper-case an identifier; None becomes an empty string."""
    if not number:
        return ""
    return number.strip().upper()
