"""Domain layer for erpstats.

Services live in their own modules (``erpstats.domain.summary``,
``erpstats.domain.loader``) and are imported from there.
"""

from erpstats.domain.entities import (
    Dataset,
    FilterConfiguration,
    Rollup,
    SummaryReport,
    TransactionRecord,
)
from erpstats.domain.errors import DomainError

__all__ = [
    "Dataset",
    "DomainError",
    "FilterConfiguration",
    "Rollup",
    "SummaryReport",
    "TransactionRecord",
]
