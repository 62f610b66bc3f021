"""Concurrent loading of ERP tables into a Dataset."""

import asyncio
import logging
from types import MappingProxyType
from typing import Iterable, Optional

from erpstats.api.pagination import CompletePaginationFetcher
from erpstats.api.tables import (
    INVOICE_LINES,
    INVOICES,
    MASTER_TABLES,
    PURCHASE_LINES,
    TableSpec,
    get_table,
)
from erpstats.domain.entities import Dataset, FetchResult
from erpstats.domain.mappers import (
    entities_from_rows,
    invoice_from_row,
    lines_from_rows,
    purchase_from_row,
)
from erpstats.utils.cache import TTLCache, make_key

logger = logging.getLogger(__name__)

SALES_TABLES = (INVOICES.code, INVOICE_LINES.code) + MASTER_TABLES


class DatasetLoader:
    """Fetches tables concurrently and maps them into domain records.

    Fetch results are memoized in the loader's own cache; call
    ``invalidate()`` to force fresh data.
    """

    def __init__(
        self,
        fetcher: CompletePaginationFetcher,
        cache: Optional[TTLCache] = None,
    ):
        """Initialize the loader.

        Args:
            fetcher: Pagination fetcher bound to an API client
            cache: Cache for fetch results; a private one is created if omitted
        """
        self.fetcher = fetcher
        self.cache = cache if cache is not None else TTLCache()

    async def fetch_table(self, spec: TableSpec) -> FetchResult:
        """Fetch one table through the cache."""
        key = make_key("fetch", spec.code, fields=spec.fields)
        return await self.cache.memoize_async(
            key,
            lambda: self.fetcher.fetch_all(
                spec.endpoint, spec.record_key, fields=spec.fields
            ),
        )

    async def fetch_tables(self, codes: Iterable[str]) -> dict[str, FetchResult]:
        """Fetch several tables concurrently.

        Raises:
            FetchError: If any table fails; the others are discarded
        """
        specs = [get_table(code) for code in dict.fromkeys(codes)]
        results = await asyncio.gather(*(self.fetch_table(spec) for spec in specs))
        return {spec.code: result for spec, result in zip(specs, results)}

    async def load(self, tables: Iterable[str] = SALES_TABLES) -> Dataset:
        """Fetch ``tables`` and build a Dataset.

        Lines are joined with their invoice (date, vendor, client, store) and
        their article (season, brand).
        """
        results = await self.fetch_tables(tables)
        return build_dataset(results)

    def invalidate(self, table: Optional[str] = None) -> None:
        """Forget cached fetches, for one table or all of them."""
        if table is None:
            self.cache.invalidate_all()
            return
        spec = get_table(table)
        self.cache.invalidate(make_key("fetch", spec.code, fields=spec.fields))


def build_dataset(results: dict[str, FetchResult]) -> Dataset:
    """Map raw fetch results into domain records."""
    masters = {
        code: entities_from_rows(result.records)
        for code, result in results.items()
        if code in MASTER_TABLES
    }

    invoices = ()
    if INVOICES.code in results:
        invoices = tuple(invoice_from_row(row) for row in results[INVOICES.code].records)

    lines = ()
    if INVOICE_LINES.code in results:
        lines = lines_from_rows(
            results[INVOICE_LINES.code].records,
            invoices=invoices,
            articles=masters.get("art_m", ()),
        )

    purchases = ()
    if PURCHASE_LINES.code in results:
        purchases = tuple(
            purchase_from_row(row) for row in results[PURCHASE_LINES.code].records
        )

    unparseable = sum(
        1 for record in invoices + lines + purchases if record.date is None
    )
    if unparseable:
        logger.warning("%d records have no parseable date", unparseable)

    unreadable = sum(1 for record in invoices + lines + purchases if not record.amounts_ok)
    if unreadable:
        logger.warning("%d records have unreadable amounts", unreadable)

    dataset = Dataset(
        invoices=invoices,
        invoice_lines=lines,
        purchase_lines=purchases,
        masters=MappingProxyType(masters),
        fetch_results=MappingProxyType(dict(results)),
        unparseable_dates=unparseable,
        unparseable_amounts=unreadable,
    )
    for table in dataset.partial_tables:
        logger.warning("Table %s loaded partially", table)
    return dataset
