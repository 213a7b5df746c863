"""
Centralized configuration for the Atelier sales dashboard.

This module provides a single source of truth for all configuration values.
Configuration is loaded from environment variables with sensible defaults.

Usage:
    from atelier.config import config

    delay = config.filters.search_debounce_ms
    top_n = config.charts.top_limit
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from dotenv import load_dotenv

from atelier.models import RelationshipType

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class FilterConfig:
    """Sales filter defaults and URL mirroring."""

    search_debounce_ms: int = field(
        default_factory=lambda: int(os.getenv("SEARCH_DEBOUNCE_MS", "400"))
    )
    default_sort_column: str = "sale_date"
    default_sort_direction: str = "desc"

    # Columns the store can order by, plus the derived client name column
    sortable_columns: Tuple[str, ...] = ("sale_date", "sale_price", "client_name")
    derived_sort_columns: Tuple[str, ...] = ("client_name",)

    # Session storage key used to restore scroll after a preset changes dates
    scroll_storage_key: str = "salesScrollPosition"

    # Query parameter names mirrored to the page URL
    query_keys: Tuple[str, ...] = (
        "from", "to", "search", "hasClient", "sortColumn", "sortDirection",
    )


@dataclass(frozen=True)
class ChartConfig:
    """Chart aggregation limits."""

    top_limit: int = 10
    monthly_window: int = 12
    # Widest day range the daily view will zero-fill
    max_gap_fill_days: int = 731
    missing_type_label: str = "Missing instrument info"
    weekday_names: Tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class IdentifierConfig:
    """Human-readable identifier scheme."""

    min_digits: int = 3
    max_length: int = 20
    default_prefix: str = "IN"
    client_prefix: str = "CL"

    # Checked in order, first substring match wins
    instrument_prefixes: List[Tuple[Tuple[str, ...], str]] = field(default_factory=lambda: [
        (("violin", "바이올린"), "VI"),
        (("viola", "비올라"), "VA"),
        (("cello", "첼로"), "CE"),
        (("bass", "베이스"), "DB"),
        (("bow", "활"), "BO"),
    ])


@dataclass(frozen=True)
class ConnectionConfig:
    """Client/instrument relationship settings."""

    relationship_types: Tuple[str, ...] = tuple(t.value for t in RelationshipType)
    default_relationship_type: str = RelationshipType.INTERESTED.value

    @property
    def order(self) -> Dict[str, int]:
        """Display position for each relationship type."""
        return {name: idx for idx, name in enumerate(self.relationship_types)}


@dataclass(frozen=True)
class StoreConfig:
    """DuckDB row store configuration."""

    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("ATELIER_DB_PATH", "data/atelier.duckdb"))
    )
    page_limit: int = 50
    max_page_limit: int = 500


@dataclass(frozen=True)
class WebConfig:
    """Web API configuration."""

    host: str = field(default_factory=lambda: os.getenv("WEB_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("WEB_PORT", "8080")))
    request_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""

    version: str = "0.3.0"
    filters: FilterConfig = field(default_factory=FilterConfig)
    charts: ChartConfig = field(default_factory=ChartConfig)
    identifiers: IdentifierConfig = field(default_factory=IdentifierConfig)
    connections: ConnectionConfig = field(default_factory=ConnectionConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    web: WebConfig = field(default_factory=WebConfig)


# Global config instance
config = AppConfig()

VERSION = config.version


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_config(require_store: bool = True) -> None:
    """
    Validate configuration values.

    Call this on application startup to fail fast with clear error messages
    instead of cryptic runtime failures.

    Args:
        require_store: If True, check that the store path is usable

    Raises:
        ConfigurationError: If configuration is invalid
    """
    errors = []

    if config.filters.search_debounce_ms < 0:
        errors.append("SEARCH_DEBOUNCE_MS must not be negative")

    if config.filters.default_sort_column not in config.filters.sortable_columns:
        errors.append(
            f"Default sort column {config.filters.default_sort_column!r} is not sortable"
        )

    if config.filters.default_sort_direction not in ("asc", "desc"):
        errors.append("Default sort direction must be 'asc' or 'desc'")

    if require_store:
        db_path = config.store.db_path
        if str(db_path) != ":memory:" and db_path.exists() and db_path.is_dir():
            errors.append(f"ATELIER_DB_PATH points to a directory: {db_path}")

    if not 1 <= config.web.port <= 65535:
        errors.append(f"WEB_PORT out of range: {config.web.port}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
