"""Summary domain service: named dimension rollups over a Dataset."""

import logging
import uuid
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Mapping, Optional, Union

from erpstats.domain.aggregation import (
    Aggregator,
    KeyFn,
    concentration_index,
    field_key,
    month_key,
    rollup_revenue,
    year_key,
)
from erpstats.domain.deduplication import (
    EntityDeduplicator,
    consolidate,
    ensure_consistent,
    representative_id,
    representative_name,
    validate_consolidation,
)
from erpstats.domain.entities import (
    ConsolidationCheck,
    Dataset,
    DeduplicationReport,
    Diagnostics,
    FilterConfiguration,
    ProfitAudit,
    ReferenceEntity,
    Rollup,
    SortOrder,
    SummaryReport,
    TransactionRecord,
)
from erpstats.domain.errors import (
    AggregationInvariantError,
    FetchError,
    ValidationError,
    partial_load,
    rollup_total_mismatch,
    unknown_dimension,
)
from erpstats.domain.filters import FilterEngine, normalize_filters
from erpstats.domain.profit import audit_stored_profit, correct_all, split_unreadable
from erpstats.utils.cache import TTLCache, make_key

logger = logging.getLogger(__name__)

REVENUE_TOLERANCE = 0.01

SOURCES = ("lines", "invoices", "purchases")


@dataclass(frozen=True)
class Dimension:
    """How to key, name and sort one aggregation axis."""

    name: str
    key_fn: KeyFn
    master: Optional[str] = None
    label: str = ""
    sort: SortOrder = SortOrder.REVENUE


DIMENSIONS: dict[str, Dimension] = {
    d.name: d
    for d in (
        Dimension("month", month_key, sort=SortOrder.KEY),
        Dimension("year", year_key, sort=SortOrder.KEY),
        Dimension("vendor", field_key("vendor_id"), "usr_m", "Vendor"),
        Dimension("client", field_key("client_id"), "ent_m", "Client"),
        Dimension("payment_method", field_key("payment_method_id"), "fpg_m", "Payment method"),
        Dimension("store", field_key("store_id"), "emp_m", "Store"),
        Dimension("provider", field_key("provider_id"), "ent_m", "Provider"),
        Dimension("brand", field_key("brand_id"), "mar_m", "Brand"),
        Dimension("season", field_key("season_id"), "temp_m", "Season"),
        Dimension("product", field_key("product_id"), "art_m", "Product"),
    )
}

FilterInput = Union[FilterConfiguration, Mapping[str, Any], None]


def _names_by_id(entities: tuple[ReferenceEntity, ...]) -> dict[int, str]:
    return {entity.id: entity.name for entity in entities if entity.name}


class SummaryService:
    """Service for building dimension summaries from a loaded Dataset."""

    def __init__(
        self,
        dataset: Dataset,
        cache: Optional[TTLCache] = None,
        strict: bool = False,
        deduplicator: Optional[EntityDeduplicator] = None,
    ):
        """Initialize summary service.

        Args:
            dataset: Records and masters to summarize
            cache: Cache for computed reports; a private one is created if omitted
            strict: If True, a partially loaded table raises FetchError
                instead of producing a degraded report
            deduplicator: Vendor deduplicator (default groups by trimmed name)
        """
        self.dataset = dataset
        self.cache = cache if cache is not None else TTLCache()
        self.strict = strict
        self.deduplicator = deduplicator or EntityDeduplicator()
        self._vendor_report: Optional[DeduplicationReport] = None
        self._names: dict[str, dict[int, str]] = {}
        # Scopes report keys to this dataset when the cache is shared
        self._dataset_token = uuid.uuid4().hex

    @property
    def dimensions(self) -> list[str]:
        return list(DIMENSIONS)

    def invalidate(self) -> None:
        """Drop cached reports and name lookups."""
        self.cache.invalidate_all()
        self._vendor_report = None
        self._names.clear()

    # Lookups

    def vendor_report(self) -> DeduplicationReport:
        """Duplicate analysis of the vendor master."""
        if self._vendor_report is None:
            self._vendor_report = self.deduplicator.analyze(self.dataset.master("usr_m"))
        return self._vendor_report

    def names_for(self, table: str) -> dict[int, str]:
        if table not in self._names:
            self._names[table] = _names_by_id(self.dataset.master(table))
        return self._names[table]

    def name_fn(self, dimension: Dimension, consolidated: bool = True) -> Callable[[Any], str]:
        """Display-name function for the keys of ``dimension``."""
        if dimension.name == "vendor" and consolidated:
            report = self.vendor_report()
            return lambda key: representative_name(report, key, dimension.label)

        if dimension.master is None:
            return str

        names = self.names_for(dimension.master)
        if dimension.name == "product":
            product_names = {
                record.product_id: record.product_name
                for record in self.dataset.invoice_lines
                if record.product_id is not None and record.product_name
            }
            return lambda key: names.get(key) or product_names.get(key) or f"Product {key}"

        return lambda key: names.get(key) or f"{dimension.label} {key}"

    def search_names(self, record: TransactionRecord):
        """Names a free-text search matches: product, vendor and client."""
        vendor_names = self.vendor_report().names
        vendor = representative_id(self.vendor_report().consolidation_map, record.vendor_id)
        return (
            record.product_name,
            self.names_for("art_m").get(record.product_id),
            vendor_names.get(vendor),
            self.names_for("ent_m").get(record.client_id),
        )

    # Records

    def source_records(self, source: Optional[str] = None) -> tuple[TransactionRecord, ...]:
        """Records aggregated for ``source``; lines when available, else invoices."""
        if source is None:
            source = "lines" if self.dataset.invoice_lines else "invoices"
        if source == "lines":
            return self.dataset.invoice_lines
        if source == "invoices":
            return self.dataset.invoices
        if source == "purchases":
            return self.dataset.purchase_lines
        raise ValidationError(f"Unknown source '{source}'. Available: {', '.join(SOURCES)}")

    def consolidate_vendors(
        self, records: tuple[TransactionRecord, ...]
    ) -> tuple[list[TransactionRecord], ConsolidationCheck]:
        """Replace vendor ids by representatives after checking totals hold.

        Raises:
            ConsolidationIntegrityError: If totals or counts would change
        """
        consolidation_map = self.vendor_report().consolidation_map
        check = ensure_consistent(validate_consolidation(records, consolidation_map))
        if check.vendors_merged:
            logger.info(
                "Vendor consolidation: %d -> %d vendors",
                check.vendors_before,
                check.vendors_after,
            )
        return consolidate(records, consolidation_map), check

    def _check_partial_loads(self) -> tuple[str, ...]:
        partial = self.dataset.partial_tables
        if partial and self.strict:
            table = partial[0]
            result = self.dataset.fetch_results[table]
            raise FetchError(
                f"/{table}",
                result.pages_fetched,
                partial_load(table, len(result.records), result.total_count),
                table,
            )
        return partial

    # Reports

    def summarize(
        self,
        dimension: str,
        filters: FilterInput = None,
        *,
        source: Optional[str] = None,
        consolidate_vendors: bool = True,
        top: Optional[int] = None,
    ) -> SummaryReport:
        """Build the rollups of ``dimension`` for the filtered records.

        Args:
            dimension: One of ``DIMENSIONS``
            filters: FilterConfiguration or a raw mapping for normalize_filters
            source: "lines", "invoices" or "purchases"
            consolidate_vendors: Merge duplicate vendor ids before grouping
            top: Keep only the first ``top`` rollups

        Returns:
            SummaryReport with rollups, grand totals and diagnostics

        Raises:
            ValidationError: If the dimension, source or filters are invalid
            ConsolidationIntegrityError: If vendor consolidation changes totals
            AggregationInvariantError: If rollups do not add up to the records
            FetchError: In strict mode, if a table was loaded partially
        """
        spec = DIMENSIONS.get(dimension)
        if spec is None:
            raise ValidationError(unknown_dimension(dimension, list(DIMENSIONS)))

        config = filters if isinstance(filters, FilterConfiguration) else normalize_filters(filters)
        partial = self._check_partial_loads()

        key = make_key(
            "summary",
            self._dataset_token,
            dimension,
            source=source,
            consolidate=consolidate_vendors,
            top=top,
            filters=asdict(config),
        )
        return self.cache.memoize(
            key,
            lambda: self._build_report(spec, config, source, consolidate_vendors, top, partial),
        )

    def _build_report(
        self,
        spec: Dimension,
        config: FilterConfiguration,
        source: Optional[str],
        consolidate_vendors: bool,
        top: Optional[int],
        partial: tuple[str, ...],
    ) -> SummaryReport:
        records, unreadable = split_unreadable(self.source_records(source))
        if unreadable:
            logger.warning(
                "%d records with unreadable amounts left out of the %s rollup",
                unreadable,
                spec.name,
            )
        records = tuple(records)
        check = None
        if consolidate_vendors and self.dataset.master("usr_m"):
            records, check = self.consolidate_vendors(records)
            if config.vendor is not None:
                config = replace(
                    config,
                    vendor=representative_id(
                        self.vendor_report().consolidation_map, config.vendor
                    ),
                )

        engine = FilterEngine(name_lookup=self.search_names)
        filtered = engine.apply_with_diagnostics(records, config)
        lines = correct_all(filtered.records)

        aggregator = Aggregator()
        rollups = aggregator.group_by(
            lines,
            spec.key_fn,
            name_fn=self.name_fn(spec, consolidated=check is not None),
            sort=spec.sort,
        )
        self._verify_revenue(spec, lines, rollups)

        if aggregator.last_dropped:
            logger.warning(
                "%d records without a %s left out of the rollup",
                aggregator.last_dropped,
                spec.name,
            )

        diagnostics = Diagnostics(
            dropped_missing_key=aggregator.last_dropped,
            unparseable_dates=sum(1 for record in records if record.date is None),
            unparseable_amounts=unreadable,
            filter_exclusions=dict(filtered.excluded),
            partial_loads=partial,
            consolidation=check,
        )
        return SummaryReport(
            dimension=spec.name,
            rollups=tuple(rollups[:top] if top is not None else rollups),
            totals=aggregator.totals(lines),
            filters=config,
            diagnostics=diagnostics,
            concentration=concentration_index(rollups),
        )

    def _verify_revenue(
        self,
        spec: Dimension,
        records: list[TransactionRecord],
        rollups: list[Rollup],
    ) -> None:
        expected = sum(r.revenue or 0.0 for r in records if spec.key_fn(r) is not None)
        actual = rollup_revenue(rollups)
        if abs(expected - actual) > REVENUE_TOLERANCE:
            raise AggregationInvariantError(
                rollup_total_mismatch(spec.name, expected, actual)
            )

    def seasonality(self, filters: FilterInput = None, source: Optional[str] = None) -> list[Rollup]:
        """Revenue by calendar month merged across years."""
        config = filters if isinstance(filters, FilterConfiguration) else normalize_filters(filters)
        readable, _ = split_unreadable(self.source_records(source))
        records = FilterEngine(name_lookup=self.search_names).apply(readable, config)
        return Aggregator().seasonality(correct_all(records))

    def profit_audit(self, tolerance: float = 0.01, sample_size: int = 10) -> ProfitAudit:
        """Compare stored line profit with the corrected value."""
        return audit_stored_profit(
            self.dataset.invoice_lines, tolerance=tolerance, sample_size=sample_size
        )

    def vendor_consolidation_check(self, source: Optional[str] = None) -> ConsolidationCheck:
        """Totals before and after vendor consolidation, without raising."""
        return validate_consolidation(
            self.source_records(source), self.vendor_report().consolidation_map
        )
