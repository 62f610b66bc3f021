"""Tests for the ERP API client and table registry."""

import httpx
import pytest
import respx

from erpstats.api.client import ErpApiClient
from erpstats.api.tables import INVOICES, MASTER_TABLES, TABLES, get_table
from erpstats.domain.errors import ValidationError

API_URL = "https://erp.test/api/v1"


@pytest.mark.asyncio
@respx.mock
async def test_get_json_sends_api_key():
    route = respx.get(f"{API_URL}/usr_m").mock(
        return_value=httpx.Response(200, json={"usr_m": []})
    )
    async with ErpApiClient(API_URL + "/", api_key="secret") as client:
        payload = await client.get_json("/usr_m", {"limit": 10})

    assert payload == {"usr_m": []}
    params = route.calls.last.request.url.params
    assert params["api_key"] == "secret"
    assert params["limit"] == "10"


@pytest.mark.asyncio
@respx.mock
async def test_non_2xx_raises():
    respx.get(f"{API_URL}/usr_m").mock(return_value=httpx.Response(404))
    async with ErpApiClient(API_URL) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_json("usr_m")


@pytest.mark.asyncio
@respx.mock
async def test_json_array_body_rejected():
    respx.get(f"{API_URL}/usr_m").mock(return_value=httpx.Response(200, json=[1, 2]))
    async with ErpApiClient(API_URL) as client:
        with pytest.raises(ValueError, match="expected a JSON object"):
            await client.get_json("usr_m")


@pytest.mark.asyncio
async def test_shared_http_client_is_not_closed():
    async with httpx.AsyncClient() as http:
        client = ErpApiClient(API_URL, http=http)
        await client.aclose()
        assert not http.is_closed


def test_table_registry():
    assert get_table("/fac_t") is INVOICES
    assert INVOICES.endpoint == "/fac_t"
    assert INVOICES.record_key == "fac_t"
    assert "usr_m" in MASTER_TABLES
    assert "fac_t" not in MASTER_TABLES
    assert len(TABLES) == 10
    with pytest.raises(ValidationError, match="Unknown table 'xyz'"):
        get_table("xyz")
