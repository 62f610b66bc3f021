"""Generic group-by reducer producing dimension rollups."""

import calendar
import logging
from collections import defaultdict
from dataclasses import replace
from typing import Any, Callable, Hashable, Iterable, Optional, Sequence

from erpstats.domain.entities import Rollup, SortOrder, TransactionRecord
from erpstats.domain.profit import corrected_profit, line_cost, margin_pct
from erpstats.utils.coercion import coerce_int

logger = logging.getLogger(__name__)

KeyFn = Callable[[TransactionRecord], Optional[Hashable]]
NameFn = Callable[[Any], str]


def month_key(record: TransactionRecord) -> Optional[str]:
    """``YYYY-MM`` for the record's normalized date."""
    if record.date is not None:
        return f"{record.date.year:04d}-{record.date.month:02d}"
    year, month = coerce_int(record.year), coerce_int(record.month)
    if year is not None and month is not None and 1 <= month <= 12:
        return f"{year:04d}-{month:02d}"
    return None


def year_key(record: TransactionRecord) -> Optional[int]:
    if record.date is not None:
        return record.date.year
    return coerce_int(record.year)


def calendar_month_key(record: TransactionRecord) -> Optional[int]:
    """Month of year (1-12), used for seasonality across years."""
    if record.date is not None:
        return record.date.month
    month = coerce_int(record.month)
    return month if month is not None and 1 <= month <= 12 else None


def field_key(attribute: str, as_id: bool = True) -> KeyFn:
    """Key function reading one record attribute.

    Ids are coerced so "7" and 7 land in the same group.
    """

    def key(record: TransactionRecord) -> Optional[Hashable]:
        value = getattr(record, attribute)
        if as_id:
            return coerce_int(value)
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    return key


def _sortable(key: Any) -> tuple:
    if isinstance(key, (int, float)) and not isinstance(key, bool):
        return (0, key, "")
    return (1, 0, str(key))


class _Accumulator:
    __slots__ = ("revenue", "cost", "profit", "quantity", "lines", "invoices", "products")

    def __init__(self):
        self.revenue = 0.0
        self.cost = 0.0
        self.profit = 0.0
        self.quantity = 0.0
        self.lines = 0
        self.invoices: set = set()
        self.products: set = set()

    def add(self, record: TransactionRecord) -> None:
        self.revenue += record.revenue or 0.0
        self.cost += line_cost(record)
        self.profit += corrected_profit(record)
        self.quantity += record.quantity or 0.0
        self.lines += 1
        if record.invoice_id is not None:
            self.invoices.add(record.invoice_id)
        if record.product_id is not None:
            self.products.add(record.product_id)


class Aggregator:
    """Turns a filtered record stream into sorted rollups."""

    def __init__(self):
        self.last_dropped = 0

    def group_by(
        self,
        records: Iterable[TransactionRecord],
        key_fn: KeyFn,
        *,
        name_fn: Optional[NameFn] = None,
        sort: SortOrder = SortOrder.REVENUE,
        with_participation: bool = True,
    ) -> list[Rollup]:
        """Group records by ``key_fn`` and compute per-group metrics.

        Records whose key is None are left out of this rollup and counted in
        ``last_dropped``.

        Args:
            records: Filtered records
            key_fn: Extracts the grouping key from a record
            name_fn: Builds a display name for a key (defaults to ``str``)
            sort: REVENUE for descending revenue with ties broken by
                ascending key, KEY for ascending key (time series)
            with_participation: Compute each group's share of total revenue

        Returns:
            List of Rollup, empty for empty input
        """
        groups: dict[Hashable, _Accumulator] = defaultdict(_Accumulator)
        dropped = 0
        for record in records:
            key = key_fn(record)
            if key is None:
                dropped += 1
                continue
            groups[key].add(record)

        self.last_dropped = dropped
        if dropped:
            logger.debug("%d records without a key left out of rollup", dropped)

        grand_revenue = sum(acc.revenue for acc in groups.values())
        name_fn = name_fn or str

        rollups = [
            self._build(key, name_fn(key), acc, grand_revenue if with_participation else None)
            for key, acc in groups.items()
        ]
        return sort_rollups(rollups, sort)

    def _build(
        self,
        key: Hashable,
        name: str,
        acc: _Accumulator,
        grand_revenue: Optional[float],
    ) -> Rollup:
        invoice_count = len(acc.invoices)
        participation = 0.0
        if grand_revenue:
            participation = (acc.revenue / grand_revenue) * 100
        return Rollup(
            key=key,
            name=name,
            total_revenue=acc.revenue,
            total_cost=acc.cost,
            total_profit=acc.profit,
            total_quantity=acc.quantity,
            line_count=acc.lines,
            invoice_count=invoice_count,
            product_count=len(acc.products),
            average_ticket=acc.revenue / invoice_count if invoice_count else 0.0,
            average_price=acc.revenue / acc.quantity if acc.quantity else 0.0,
            margin_pct=margin_pct(acc.profit, acc.revenue),
            participation_pct=participation,
        )

    def totals(self, records: Iterable[TransactionRecord], name: str = "Total") -> Rollup:
        """Grand totals over every record as a single rollup."""
        acc = _Accumulator()
        for record in records:
            acc.add(record)
        rollup = self._build(None, name, acc, None)
        return replace(rollup, participation_pct=100.0 if acc.revenue else 0.0)

    def seasonality(self, records: Iterable[TransactionRecord]) -> list[Rollup]:
        """Revenue by month of year, merged across years, January first."""
        return self.group_by(
            records,
            calendar_month_key,
            name_fn=lambda month: calendar.month_name[month],
            sort=SortOrder.KEY,
        )


def sort_rollups(rollups: Sequence[Rollup], sort: SortOrder = SortOrder.REVENUE) -> list[Rollup]:
    if sort == SortOrder.KEY:
        return sorted(rollups, key=lambda r: _sortable(r.key))
    return sorted(rollups, key=lambda r: (-r.total_revenue, _sortable(r.key)))


def top_n(rollups: Sequence[Rollup], n: int) -> list[Rollup]:
    """First ``n`` rollups by descending revenue."""
    return sort_rollups(rollups, SortOrder.REVENUE)[: max(n, 0)]


def concentration_index(rollups: Sequence[Rollup]) -> float:
    """Herfindahl index of revenue shares (0 to 1)."""
    return sum((rollup.participation_pct / 100) ** 2 for rollup in rollups)


def rollup_revenue(rollups: Iterable[Rollup]) -> float:
    return sum(rollup.total_revenue for rollup in rollups)
