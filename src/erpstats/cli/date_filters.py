"""CLI helpers for date range resolution."""

import functools
from datetime import date

import click

from erpstats.utils.date_parser import get_date_range, parse_date

PERIODS = ("this-month", "this-year", "this-week", "last-month", "last-year", "last-week")


def period_options(command):
    """Add --start-date, --end-date and the period flags to ``command``.

    The flags reach the command as one ``period_flags`` dict.
    """

    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        kwargs["period_flags"] = {
            period: kwargs.pop(period.replace("-", "_")) for period in PERIODS
        }
        return command(*args, **kwargs)

    for period in reversed(PERIODS):
        wrapper = click.option(
            f"--{period}", is_flag=True, help=f"Filter to {period.replace('-', ' ')}"
        )(wrapper)
    wrapper = click.option(
        "--end-date", help="End date (YYYY-MM-DD, DD/MM/YYYY or relative like 'today')"
    )(wrapper)
    wrapper = click.option(
        "--start-date", help="Start date (YYYY-MM-DD, DD/MM/YYYY or relative like 'last month')"
    )(wrapper)
    return wrapper


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from period flags or explicit dates."""
    selected = [period for period, is_set in period_flags.items() if is_set]

    if len(selected) > 1:
        click.echo(
            "Error: Only one period option (--this-month, --this-year, --this-week, "
            "--last-month, --last-year, --last-week) can be specified at a time.",
            err=True,
        )
        ctx.exit(1)

    if selected and (start_date or end_date):
        click.echo(
            "Error: Period options (--this-month, --this-year, etc.) cannot be "
            "combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if selected:
        return get_date_range(selected[0])

    start = None
    end = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    return start, end
