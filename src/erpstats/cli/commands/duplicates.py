"""Duplicate vendor commands."""

import click

from erpstats.api.tables import INVOICES, USERS
from erpstats.cli.dataset_loading import load_dataset
from erpstats.domain.deduplication import format_duplicate_report
from erpstats.domain.summary import SummaryService


@click.command("duplicates")
@click.option("--skip-check", is_flag=True, help="Do not load invoices to verify totals")
@click.pass_context
def duplicates(ctx, skip_check: bool):
    """Report vendors registered under several IDs with the same name."""
    tables = (USERS.code,) if skip_check else (USERS.code, INVOICES.code)
    dataset = load_dataset(ctx, tables)
    service = SummaryService(dataset)

    report = service.vendor_report()
    click.echo(format_duplicate_report(report))

    if skip_check:
        return

    check = service.vendor_consolidation_check(source="invoices")
    click.echo("\nConsolidation check (invoices):")
    click.echo("-" * 60)
    click.echo(f"{'Vendors':<20} {check.vendors_before:>18} {check.vendors_after:>18}")
    click.echo(f"{'Invoices':<20} {check.count_before:>18} {check.count_after:>18}")
    click.echo(
        f"{'Revenue':<20} {check.total_before:>18,.2f} {check.total_after:>18,.2f}"
    )
    click.echo("-" * 60)
    if check.is_valid:
        click.echo("Totals preserved.")
    else:
        click.echo("Error: Consolidation changes totals.", err=True)
        ctx.exit(1)


def register_commands(cli):
    """Register duplicates command with main CLI."""
    cli.add_command(duplicates)
