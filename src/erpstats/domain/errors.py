"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class FetchError(DomainError):
    """A page request failed while retrieving a table.

    The whole fetch is aborted; partial records are never returned.
    """

    def __init__(
        self,
        endpoint: str,
        page: int,
        reason: str,
        table: Optional[str] = None,
    ):
        self.endpoint = endpoint
        self.page = page
        self.reason = reason
        self.table = table
        super().__init__(fetch_failed(endpoint, page, reason, table))


class ConsolidationIntegrityError(DomainError):
    """Totals after vendor consolidation diverge from the raw totals."""

    def __init__(self, check):
        self.check = check
        super().__init__(
            consolidation_mismatch(
                check.total_before,
                check.total_after,
                check.count_before,
                check.count_after,
            )
        )


class AggregationInvariantError(DomainError):
    """Rollup totals do not add up to the filtered record set."""


def fetch_failed(
    endpoint: str, page: int, reason: str, table: Optional[str] = None
) -> str:
    """Return message for an aborted paginated fetch."""
    prefix = f"[{table}] " if table else ""
    return f"{prefix}Fetch of '{endpoint}' failed on page {page}: {reason}"


def partial_load(table: str, fetched: int, total: int) -> str:
    """Return warning message for a fetch stopped by the safety cap."""
    return (
        f"Partial load for '{table}': fetched {fetched} of {total} records. "
        "Counts will under-represent reality."
    )


def consolidation_mismatch(
    total_before: float, total_after: float, count_before: int, count_after: int
) -> str:
    """Return message when consolidated totals diverge from raw totals."""
    return (
        "Vendor consolidation changed totals: "
        f"amount {total_before:,.2f} -> {total_after:,.2f}, "
        f"count {count_before} -> {count_after}"
    )


def rollup_total_mismatch(dimension: str, expected: float, actual: float) -> str:
    """Return message when a rollup drops or duplicates revenue."""
    return (
        f"Rollup by '{dimension}' totals {actual:,.2f} "
        f"but the filtered records total {expected:,.2f}"
    )


def unknown_dimension(dimension: str, available: list[str]) -> str:
    """Return message for an unsupported aggregation dimension."""
    return f"Unknown dimension '{dimension}'. Available: {', '.join(available)}"
