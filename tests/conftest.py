"""Shared pytest fixtures for erpstats tests."""

import pytest

from erpstats.domain.entities import FetchResult
from erpstats.domain.loader import build_dataset
from erpstats.domain.summary import SummaryService

API_URL = "https://erp.test/api/v1"


def fetch_result(table: str, rows: list[dict]) -> FetchResult:
    """Build a complete FetchResult for ``rows``."""
    return FetchResult(table=table, records=tuple(rows), total_count=len(rows), pages_fetched=1)


@pytest.fixture
def raw_tables():
    """Raw ERP rows as the API returns them, with mixed string/number ids."""
    return {
        "usr_m": [
            {"id": 1, "name": "Ana"},
            {"id": 2, "name": "Ana "},
            {"id": 3, "name": "Luis"},
        ],
        "ent_m": [
            {"id": 10, "name": "Joyeria Sol", "es_clt": True},
            {"id": 20, "name": "Proveedor Oro", "es_prv": True},
        ],
        "fpg_m": [{"id": 1, "name": "Cash"}, {"id": 2, "name": "Card"}],
        "emp_m": [{"id": 5, "name": "Main Store"}],
        "mar_m": [{"id": 7, "name": "Luxe"}],
        "temp_m": [{"id": 3, "name": "Summer"}],
        "art_m": [
            {"id": 100, "name": "Gold ring", "temp": 3, "mar": 7},
            {"id": 101, "name": "Silver chain", "temp": "3"},
        ],
        "fac_t": [
            {"id": 1000, "fch": "2024-03-15", "eje": "2024", "mes": 3, "tot": 100,
             "alt_usr": 1, "clt": 10, "fpg": 1, "emp": 5},
            {"id": 1001, "fch": "15/03/2024", "eje": 2024, "mes": "3", "tot": 50,
             "alt_usr": "2", "clt": 10, "fpg": 2, "emp": 5},
            {"id": 1002, "fch": "20240410", "eje": 2024, "mes": 4, "tot": 30,
             "alt_usr": 3, "clt": None, "fpg": 1, "emp": 5},
        ],
        "fac_lin_t": [
            {"id": 1, "fac": 1000, "art": 100, "name": "Gold ring", "can": 1,
             "cos": 60, "imp_pvp": 100, "ben": -60, "prv": 20},
            {"id": 2, "fac": 1001, "art": 101, "name": "Silver chain", "can": 2,
             "cos": 10, "imp_pvp": 50, "ben": -20, "prv": 20},
            {"id": 3, "fac": 1002, "art": 101, "name": "Silver chain", "can": 1,
             "cos": 10, "imp_pvp": 30, "ben": 20, "prv": None},
        ],
    }


@pytest.fixture
def sample_dataset(raw_tables):
    """Dataset built from the raw tables through the mappers."""
    return build_dataset({table: fetch_result(table, rows) for table, rows in raw_tables.items()})


@pytest.fixture
def summary_service(sample_dataset):
    """Create a SummaryService over the sample dataset."""
    return SummaryService(sample_dataset)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
