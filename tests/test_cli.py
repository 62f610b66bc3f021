"""Tests for the erpstats command line."""

import httpx
import respx

from erpstats.cli.main import cli
from erpstats.config import load_settings
from erpstats.domain.loader import build_dataset

from conftest import API_URL, fetch_result


def test_help_does_not_need_settings(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "summary" in result.output
    assert "profit-audit" in result.output


def test_summary_by_vendor(cli_runner, sample_dataset):
    result = cli_runner.invoke(cli, ["summary", "vendor"], obj={"dataset": sample_dataset})

    assert result.exit_code == 0, result.output
    assert "Summary by vendor" in result.output
    assert "Ana" in result.output
    assert "150.00" in result.output
    assert "Luis" in result.output
    assert "180.00" in result.output
    assert "Vendors consolidated: 3 -> 2" in result.output


def test_summary_with_filters(cli_runner, sample_dataset):
    result = cli_runner.invoke(
        cli,
        ["summary", "product", "--year", "2024", "--month", "todos", "--start-date", "2024-04-01", "--top", "1"],
        obj={"dataset": sample_dataset},
    )

    assert result.exit_code == 0, result.output
    assert "Silver chain" in result.output
    assert "Gold ring" not in result.output
    assert "Showing top 1 rows" in result.output


def test_summary_reports_missing_keys(cli_runner, sample_dataset):
    result = cli_runner.invoke(cli, ["summary", "client"], obj={"dataset": sample_dataset})
    assert result.exit_code == 0
    assert "Joyeria Sol" in result.output
    assert "1 records have no client" in result.output


def test_summary_no_records(cli_runner, sample_dataset):
    result = cli_runner.invoke(
        cli, ["summary", "vendor", "--year", "1999"], obj={"dataset": sample_dataset}
    )
    assert result.exit_code == 0
    assert "No records found." in result.output


def test_summary_invalid_filter(cli_runner, sample_dataset):
    result = cli_runner.invoke(
        cli, ["summary", "vendor", "--month", "13"], obj={"dataset": sample_dataset}
    )
    assert result.exit_code == 1
    assert "Error: Invalid value for 'month'" in result.output


def test_summary_rejects_unknown_dimension(cli_runner, sample_dataset):
    result = cli_runner.invoke(cli, ["summary", "colour"], obj={"dataset": sample_dataset})
    assert result.exit_code == 2


def test_duplicates(cli_runner, sample_dataset):
    result = cli_runner.invoke(cli, ["duplicates"], obj={"dataset": sample_dataset})

    assert result.exit_code == 0, result.output
    assert '"Ana" (2 ids)' in result.output
    assert "Totals preserved." in result.output


def test_profit_audit(cli_runner, sample_dataset):
    result = cli_runner.invoke(cli, ["profit-audit"], obj={"dataset": sample_dataset})

    assert result.exit_code == 0, result.output
    assert "Lines checked:  3" in result.output
    assert "Inconsistent:   2" in result.output
    assert "Gold ring" in result.output


def test_missing_api_url_is_reported(cli_runner, monkeypatch):
    monkeypatch.delenv("ERPSTATS_API_URL", raising=False)
    result = cli_runner.invoke(cli, ["fetch", "fac_t"], obj={})
    assert result.exit_code == 1
    assert "No ERP API URL configured" in result.output


@respx.mock
def test_fetch_reports_completeness(cli_runner):
    route = respx.get(f"{API_URL}/fac_t").mock(
        return_value=httpx.Response(200, json={"fac_t": [{"id": 1}, {"id": 2}], "total_count": 2})
    )

    result = cli_runner.invoke(
        cli, ["--api-url", API_URL, "--api-key", "k", "fetch", "fac_t"], obj={}
    )

    assert result.exit_code == 0, result.output
    assert "complete" in result.output
    assert route.calls.last.request.url.params["api_key"] == "k"


@respx.mock
def test_fetch_failure_exits_with_error(cli_runner):
    respx.get(f"{API_URL}/usr_m").mock(return_value=httpx.Response(500))

    result = cli_runner.invoke(cli, ["--api-url", API_URL, "fetch", "usr_m"], obj={})

    assert result.exit_code == 1
    assert "failed on page 1" in result.output


def test_settings_passed_in_context_are_used(cli_runner, sample_dataset):
    settings = load_settings(api_url=API_URL)
    result = cli_runner.invoke(
        cli, ["summary", "year"], obj={"dataset": sample_dataset, "settings": settings}
    )
    assert result.exit_code == 0
    assert "2024" in result.output


def test_summary_reports_unreadable_amounts(cli_runner, raw_tables):
    raw_tables["fac_lin_t"][0]["imp_pvp"] = "n/a"
    dataset = build_dataset({table: fetch_result(table, rows) for table, rows in raw_tables.items()})

    result = cli_runner.invoke(cli, ["summary", "year"], obj={"dataset": dataset})

    assert result.exit_code == 0, result.output
    assert "80.00" in result.output
    assert "1 records have unreadable amounts" in result.output
