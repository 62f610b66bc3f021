"""Complete paginated retrieval of ERP tables."""

import logging
from typing import Any, Mapping, Optional, Sequence

import httpx

from erpstats.api.client import ErpApiClient
from erpstats.config import DEFAULT_MAX_RECORDS, DEFAULT_PAGE_SIZE
from erpstats.domain.entities import FetchResult
from erpstats.domain.errors import FetchError, partial_load

logger = logging.getLogger(__name__)


def _total_count(payload: Mapping[str, Any], page_length: int) -> int:
    for key in ("total_count", "count"):
        value = payload.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value)
    return page_length


class CompletePaginationFetcher:
    """Fetches every page of a table until the server-reported total."""

    def __init__(
        self,
        client: ErpApiClient,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_records: int = DEFAULT_MAX_RECORDS,
    ):
        """Initialize the fetcher.

        Args:
            client: ERP API client
            page_size: Default records per request
            max_records: Default safety cap on accumulated records
        """
        self.client = client
        self.page_size = page_size
        self.max_records = max_records

    async def fetch_all(
        self,
        endpoint: str,
        record_key: Optional[str] = None,
        page_size: Optional[int] = None,
        max_records: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> FetchResult:
        """Retrieve all records of ``endpoint``.

        Pages are requested at offsets 0, page_size, 2*page_size... until the
        offset reaches the reported total, a short page arrives, or the
        safety cap is hit. Hitting the cap returns an incomplete result and
        logs a warning.

        Args:
            endpoint: Table endpoint, e.g. ``/fac_t``
            record_key: Key holding the records in each page (defaults to the
                endpoint name)
            page_size: Records per request
            max_records: Safety cap on accumulated records
            fields: Optional field projection
            params: Extra query parameters sent with every page

        Returns:
            FetchResult with every record retrieved

        Raises:
            FetchError: If any page fails; no partial records are returned
        """
        table = endpoint.strip("/")
        record_key = record_key or table
        page_size = page_size or self.page_size
        max_records = self.max_records if max_records is None else max_records
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        records: list[dict] = []
        offset = 0
        page = 0
        total_count = 0
        truncated = False

        while True:
            page += 1
            query: dict[str, Any] = dict(params or {})
            query["limit"] = page_size
            query["offset"] = offset
            if fields:
                query["fields"] = ",".join(fields)

            payload, rows = await self._fetch_page(endpoint, record_key, page, query, table)
            total_count = _total_count(payload, len(rows))
            records.extend(rows)
            offset += page_size

            logger.debug(
                "%s page %d: %d records (accumulated %d of %d)",
                table,
                page,
                len(rows),
                len(records),
                total_count,
            )

            if offset >= total_count or len(rows) < page_size:
                break
            if len(records) >= max_records:
                truncated = len(records) < total_count
                break

        result = FetchResult(
            table=table,
            records=tuple(records),
            total_count=total_count,
            pages_fetched=page,
            truncated=truncated,
        )
        if result.complete:
            logger.info("%s complete: %d records in %d pages", table, len(records), page)
        else:
            logger.warning(partial_load(table, len(records), total_count))
        return result

    async def _fetch_page(
        self,
        endpoint: str,
        record_key: str,
        page: int,
        query: Mapping[str, Any],
        table: str,
    ) -> tuple[dict[str, Any], list[dict]]:
        try:
            payload = await self.client.get_json(endpoint, query)
        except httpx.HTTPStatusError as e:
            raise FetchError(endpoint, page, f"HTTP {e.response.status_code}", table) from e
        except httpx.HTTPError as e:
            raise FetchError(endpoint, page, str(e) or type(e).__name__, table) from e
        except ValueError as e:
            raise FetchError(endpoint, page, f"invalid JSON body: {e}", table) from e

        rows = payload.get(record_key)
        if not isinstance(rows, list):
            raise FetchError(endpoint, page, f"missing record key '{record_key}'", table)
        return payload, rows
