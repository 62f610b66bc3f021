"""ERP API access layer for erpstats."""

from erpstats.api.client import ErpApiClient
from erpstats.api.factories import create_api_client, create_fetcher
from erpstats.api.pagination import CompletePaginationFetcher
from erpstats.api.tables import TABLES, TableSpec, get_table

__all__ = [
    "ErpApiClient",
    "CompletePaginationFetcher",
    "TableSpec",
    "TABLES",
    "get_table",
    "create_api_client",
    "create_fetcher",
]
