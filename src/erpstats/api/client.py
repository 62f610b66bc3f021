"""Async HTTP client for the ERP REST API."""

import logging
from typing import Any, Mapping, Optional

import httpx

from erpstats.config import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class ErpApiClient:
    """Thin wrapper around ``httpx.AsyncClient`` for ERP endpoints.

    Every request carries the ``api_key`` query parameter. Non-2xx responses
    raise ``httpx.HTTPStatusError`` and bodies that are not JSON objects
    raise ``ValueError``; the pagination layer turns both into FetchError.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        http: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            base_url: ERP API root, e.g. ``https://erp.example.com/api/v1``
            api_key: Key sent as the ``api_key`` query parameter
            timeout: Per-request timeout in seconds
            http: Optional shared AsyncClient; created and owned if omitted
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout, headers=DEFAULT_HEADERS)

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def get_json(
        self, endpoint: str, params: Optional[Mapping[str, Any]] = None
    ) -> dict[str, Any]:
        """GET ``endpoint`` and return the decoded JSON object.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status
            ValueError: If the body is not a JSON object
        """
        query = dict(params or {})
        if self.api_key:
            query["api_key"] = self.api_key

        response = await self._http.get(self.url_for(endpoint), params=query)
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        return payload

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""
        if self._owns_http and not self._http.is_closed:
            await self._http.aclose()

    async def __aenter__(self) -> "ErpApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
