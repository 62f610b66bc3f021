"""Tests for CLI date filter helper."""

import click
import pytest

from erpstats.cli.date_filters import PERIODS, period_options, resolve_cli_date_range
from erpstats.utils.date_parser import get_date_range, parse_date


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def _flags(*selected):
    return {period: period in selected for period in PERIODS}


def test_resolve_cli_date_range_rejects_multiple_periods(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date=None,
            end_date=None,
            period_flags=_flags("this-month", "last-month"),
        )

    assert excinfo.value.exit_code == 1
    assert "Only one period option" in capsys.readouterr().err


def test_resolve_cli_date_range_rejects_period_with_start_end(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date="2024-01-01",
            end_date=None,
            period_flags=_flags("this-month"),
        )

    assert excinfo.value.exit_code == 1
    assert "cannot be combined" in capsys.readouterr().err


def test_resolve_cli_date_range_returns_period_range():
    start, end = resolve_cli_date_range(
        _ctx(), start_date=None, end_date=None, period_flags=_flags("last-year")
    )
    assert (start, end) == get_date_range("last-year")


def test_resolve_cli_date_range_parses_explicit_dates():
    start, end = resolve_cli_date_range(
        _ctx(), start_date="01/03/2024", end_date="2024-03-31", period_flags=_flags()
    )
    assert start == parse_date("2024-03-01")
    assert end == parse_date("31/03/2024")


def test_resolve_cli_date_range_open_ended():
    assert resolve_cli_date_range(_ctx(), start_date=None, end_date=None, period_flags={}) == (None, None)


def test_resolve_cli_date_range_invalid_date(capsys):
    with pytest.raises(click.exceptions.Exit):
        resolve_cli_date_range(_ctx(), start_date="never ever", end_date=None, period_flags={})
    assert "Invalid start date" in capsys.readouterr().err


def test_period_options_collects_flags(cli_runner):
    @click.command()
    @period_options
    def show(start_date, end_date, period_flags):
        click.echo(f"{start_date}|{end_date}|{sorted(p for p, on in period_flags.items() if on)}")

    result = cli_runner.invoke(show, ["--this-week"])
    assert result.exit_code == 0
    assert result.output.strip() == "None|None|['this-week']"

    result = cli_runner.invoke(show, ["--start-date", "2024-01-01"])
    assert result.output.strip() == "2024-01-01|None|[]"
