"""Factory functions for creating API clients and fetchers."""

from typing import Optional

import httpx

from erpstats.api.client import ErpApiClient
from erpstats.api.pagination import CompletePaginationFetcher
from erpstats.config import Settings, load_settings
from erpstats.domain.errors import ValidationError


def create_api_client(
    settings: Optional[Settings] = None, http: Optional[httpx.AsyncClient] = None
) -> ErpApiClient:
    """Create an ERP API client.

    Args:
        settings: Settings to use. If None, they are loaded from the
            ERPSTATS_* environment variables

    Returns:
        ErpApiClient pointing at ``settings.api_url``

    Raises:
        ValidationError: If no API URL is configured
    """
    if settings is None:
        settings = load_settings()

    if not settings.api_url:
        raise ValidationError(
            "No ERP API URL configured. Use --api-url or set ERPSTATS_API_URL."
        )

    return ErpApiClient(
        settings.api_url,
        api_key=settings.api_key,
        timeout=settings.timeout,
        http=http,
    )


def create_fetcher(
    client: ErpApiClient, settings: Optional[Settings] = None
) -> CompletePaginationFetcher:
    """Create a pagination fetcher using the configured page size and cap."""
    if settings is None:
        settings = load_settings()
    return CompletePaginationFetcher(
        client,
        page_size=settings.page_size,
        max_records=settings.max_records,
    )
