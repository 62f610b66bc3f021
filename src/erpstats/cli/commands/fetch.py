"""Raw table fetch commands."""

import click

from erpstats.api.tables import TABLES
from erpstats.cli.dataset_loading import fetch_tables


@click.command("fetch")
@click.argument("tables", nargs=-1, required=True, type=click.Choice(sorted(TABLES)))
@click.pass_context
def fetch(ctx, tables: tuple[str, ...]):
    """Fetch TABLES completely and report record counts."""
    results = fetch_tables(ctx, tables)

    incomplete = False
    for code in tables:
        result = results[code]
        status = "complete" if result.complete else "PARTIAL"
        incomplete = incomplete or not result.complete
        click.echo(
            f"{code:<12} {len(result.records):>8} of {result.total_count:<8} "
            f"records in {result.pages_fetched} pages ({status})"
        )

    if incomplete:
        ctx.exit(2)


def register_commands(cli):
    """Register fetch command with main CLI."""
    cli.add_command(fetch)
