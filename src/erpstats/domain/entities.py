"""Domain model entities for erpstats.

These are pure data classes representing business concepts, independent of
the ERP wire format. The mappers translate raw JSON rows into them so the
reconciliation logic stays stable when the ERP renames a field.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class RecordKind(str, Enum):
    """Kind of transactional record."""

    INVOICE = "invoice"
    INVOICE_LINE = "invoice_line"
    PURCHASE_LINE = "purchase_line"


class SortOrder(str, Enum):
    """Ordering applied to rollups."""

    REVENUE = "revenue"
    KEY = "key"


@dataclass(frozen=True)
class ParsedDate:
    """Tagged result of date normalization.

    ``rule`` names the parsing rule that matched, or ``"unparseable"``.
    """

    raw: Any
    value: Optional[date]
    rule: str

    @property
    def ok(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class ReferenceEntity:
    """Master data row (vendor, client, store, brand, season, article...)."""

    id: int
    name: Optional[str]
    attributes: Mapping[str, Any] = field(
        default_factory=dict, compare=False, hash=False
    )


@dataclass(frozen=True)
class TransactionRecord:
    """Invoice, invoice line or purchase line."""

    id: Optional[int]
    kind: RecordKind
    raw_date: Any = None
    date: Optional[date] = None
    year: Optional[int] = None
    month: Optional[int] = None
    revenue: float = 0.0
    quantity: float = 0.0
    unit_cost: float = 0.0
    stored_profit: Optional[float] = None
    parent_id: Optional[int] = None
    vendor_id: Optional[int] = None
    client_id: Optional[int] = None
    payment_method_id: Optional[int] = None
    store_id: Optional[int] = None
    division_id: Optional[int] = None
    brand_id: Optional[int] = None
    season_id: Optional[int] = None
    provider_id: Optional[int] = None
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    family_id: Optional[int] = None
    corrected_profit: Optional[float] = None
    unparseable_fields: tuple[str, ...] = ()

    @property
    def amounts_ok(self) -> bool:
        """False when revenue, quantity or cost could not be read."""
        return not self.unparseable_fields

    @property
    def invoice_id(self) -> Optional[int]:
        """Invoice this record belongs to (itself for invoices)."""
        if self.kind == RecordKind.INVOICE:
            return self.id
        return self.parent_id


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a complete paginated fetch of one table."""

    table: str
    records: tuple[dict, ...]
    total_count: int
    pages_fetched: int
    truncated: bool = False

    @property
    def complete(self) -> bool:
        return len(self.records) == self.total_count


@dataclass(frozen=True)
class DuplicateGroup:
    """Entities sharing the same trimmed display name."""

    name: str
    ids: tuple[int, ...]
    representative_id: int


@dataclass(frozen=True)
class DeduplicationReport:
    """Duplicate groups plus the id -> representative id map."""

    groups: tuple[DuplicateGroup, ...]
    consolidation_map: Mapping[int, int]
    names: Mapping[int, str]
    total_entities: int
    unique_names: int

    @property
    def duplicated_names(self) -> int:
        return len(self.groups)

    @property
    def removed_ids(self) -> int:
        return sum(len(group.ids) - 1 for group in self.groups)


@dataclass(frozen=True)
class ConsolidationCheck:
    """Totals and counts before and after vendor consolidation."""

    total_before: float
    total_after: float
    count_before: int
    count_after: int
    vendors_before: int
    vendors_after: int
    tolerance: float = 0.01

    @property
    def is_valid(self) -> bool:
        return (
            abs(self.total_before - self.total_after) < self.tolerance
            and self.count_before == self.count_after
        )

    @property
    def vendors_merged(self) -> int:
        return self.vendors_before - self.vendors_after


@dataclass(frozen=True)
class ProfitDiscrepancy:
    """Line whose stored profit disagrees with the corrected profit."""

    line_id: Optional[int]
    invoice_id: Optional[int]
    product_name: Optional[str]
    stored_profit: float
    corrected_profit: float

    @property
    def difference(self) -> float:
        return abs(self.stored_profit - self.corrected_profit)


@dataclass(frozen=True)
class ProfitAudit:
    """Summary of stored vs corrected profit across lines."""

    total: int
    consistent: int
    inconsistent: int
    samples: tuple[ProfitDiscrepancy, ...] = ()

    @property
    def consistent_pct(self) -> float:
        return (self.consistent / self.total) * 100 if self.total > 0 else 0.0


@dataclass(frozen=True)
class FilterConfiguration:
    """Optional constraints applied to transactional records (ANDed)."""

    year: Optional[int] = None
    month: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    store: Optional[int] = None
    client: Optional[int] = None
    vendor: Optional[int] = None
    payment_method: Optional[int] = None
    provider: Optional[int] = None
    brand: Optional[int] = None
    min_amount: Optional[float] = None
    search: Optional[str] = None
    positive_only: bool = False

    @property
    def is_empty(self) -> bool:
        return self == FilterConfiguration()


@dataclass(frozen=True)
class FilterResult:
    """Records kept by the filter engine and per-predicate exclusions."""

    records: tuple[TransactionRecord, ...]
    excluded: Mapping[str, int]
    undated_excluded: int = 0


@dataclass(frozen=True)
class Rollup:
    """Aggregated metrics for one dimension value."""

    key: Any
    name: str
    total_revenue: float = 0.0
    total_cost: float = 0.0
    total_profit: float = 0.0
    total_quantity: float = 0.0
    line_count: int = 0
    invoice_count: int = 0
    product_count: int = 0
    average_ticket: float = 0.0
    average_price: float = 0.0
    margin_pct: float = 0.0
    participation_pct: float = 0.0


@dataclass(frozen=True)
class Dataset:
    """Everything loaded for one analysis window."""

    invoices: tuple[TransactionRecord, ...] = ()
    invoice_lines: tuple[TransactionRecord, ...] = ()
    purchase_lines: tuple[TransactionRecord, ...] = ()
    masters: Mapping[str, tuple[ReferenceEntity, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    fetch_results: Mapping[str, FetchResult] = field(
        default_factory=lambda: MappingProxyType({})
    )
    unparseable_dates: int = 0
    unparseable_amounts: int = 0

    def master(self, table: str) -> tuple[ReferenceEntity, ...]:
        return tuple(self.masters.get(table, ()))

    @property
    def partial_tables(self) -> tuple[str, ...]:
        return tuple(
            sorted(
                table
                for table, result in self.fetch_results.items()
                if not result.complete
            )
        )


@dataclass(frozen=True)
class Diagnostics:
    """Record-level issues recovered locally during one aggregation."""

    dropped_missing_key: int = 0
    unparseable_dates: int = 0
    unparseable_amounts: int = 0
    filter_exclusions: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )
    partial_loads: tuple[str, ...] = ()
    consolidation: Optional[ConsolidationCheck] = None

    @property
    def degraded(self) -> bool:
        return bool(self.partial_loads)


@dataclass(frozen=True)
class SummaryReport:
    """Rollups for one dimension plus the grand totals."""

    dimension: str
    rollups: tuple[Rollup, ...]
    totals: Rollup
    filters: FilterConfiguration
    diagnostics: Diagnostics
    concentration: float = 0.0
