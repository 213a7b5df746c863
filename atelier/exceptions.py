"""
Custom exception hierarchy for the Atelier sales dashboard.

Exception Hierarchy:
    AtelierError (base)
    └── StoreError             - Row store failed to load or query data

    ValidationError            - Input validation failed

Pure pipeline functions (enrichment, charts, identifiers) never raise for
well-formed rows; missing references and empty collections resolve to data
states instead.
"""


class AtelierError(Exception):
    """Base exception for all Atelier errors."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class StoreError(AtelierError):
    """
    The row store could not execute a query.

    Carries the table involved so callers can log which collection failed.
    """

    def __init__(self, message: str, details: str = None, table: str = None):
        super().__init__(message, details)
        self.table = table


class ValidationError(Exception):
    """
    Input validation failed.

    Used for validating query parameters before they reach the pipeline.
    """

    def __init__(self, field: str, message: str, value: any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value!r})"
        return f"{self.field}: {self.message}"
