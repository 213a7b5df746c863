"""
Core library for the Atelier sales dashboard.

This package holds the logic the web/ package serves:
- exceptions: Custom exception hierarchy
- models: Sales, clients, instruments and aggregation results
- enrichment: Joining sales to clients and instruments
- charts / insights: Chart views, totals and data-quality checks
- identifiers: Serial and client number generation
- grouping: Connection grouping and counting
- filter_state: Sales filters mirrored to the query string
- config: Centralized configuration
"""

# Import in dependency order
from atelier.exceptions import (
    AtelierError,
    StoreError,
    ValidationError,
)

from atelier.validators import (
    validate_date_string,
    validate_optional_date_range,
    validate_sort_column,
    validate_sort_direction,
    validate_has_client,
    validate_preset,
    validate_limit,
    validate_identifier_kind,
)

from atelier.enrichment import (
    Lookup,
    SalesEnricher,
    create_lookups,
    enrich_sales,
)

from atelier.charts import build_sales_charts
from atelier.identifiers import (
    generate_client_number,
    generate_instrument_serial,
    validate_unique_number,
)
from atelier.filter_state import SalesFilters, SalesFilterController
from atelier.config import config

__all__ = [
    # Exceptions
    "AtelierError",
    "StoreError",
    "ValidationError",
    # Validators
    "validate_date_string",
    "validate_optional_date_range",
    "validate_sort_column",
    "validate_sort_direction",
    "validate_has_client",
    "validate_preset",
    "validate_limit",
    "validate_identifier_kind",
    # Enrichment
    "Lookup",
    "SalesEnricher",
    "create_lookups",
    "enrich_sales",
    # Charts
    "build_sales_charts",
    # Identifiers
    "generate_client_number",
    "generate_instrument_serial",
    "validate_unique_number",
    # Filters
    "SalesFilters",
    "SalesFilterController",
    # Config
    "config",
]
