"""Summary commands."""

import click

from erpstats.api.tables import PURCHASE_LINES
from erpstats.cli.dataset_loading import load_dataset
from erpstats.cli.date_filters import period_options, resolve_cli_date_range
from erpstats.cli.error_handling import echo_warning, handle_domain_error
from erpstats.domain.errors import DomainError
from erpstats.domain.loader import SALES_TABLES
from erpstats.domain.summary import DIMENSIONS, SOURCES, SummaryService


def _format_amount(value: float) -> str:
    return f"{value:,.2f}"


def _display_report(report, top: int | None) -> None:
    click.echo(f"\nSummary by {report.dimension.replace('_', ' ')}:")
    click.echo("-" * 96)
    click.echo(
        f"{'Name':<36} {'Revenue':>14} {'Profit':>14} {'Margin':>8} "
        f"{'Share':>8} {'Invoices':>10}"
    )
    click.echo("-" * 96)

    for rollup in report.rollups:
        name = str(rollup.name)[:36]
        click.echo(
            f"{name:<36} {_format_amount(rollup.total_revenue):>14} "
            f"{_format_amount(rollup.total_profit):>14} {rollup.margin_pct:>7.1f}% "
            f"{rollup.participation_pct:>7.1f}% {rollup.invoice_count:>10}"
        )

    totals = report.totals
    click.echo("-" * 96)
    click.echo(
        f"{'TOTAL':<36} {_format_amount(totals.total_revenue):>14} "
        f"{_format_amount(totals.total_profit):>14} {totals.margin_pct:>7.1f}% "
        f"{'':>8} {totals.invoice_count:>10}"
    )
    click.echo("=" * 96)

    if top is not None:
        click.echo(f"Showing top {len(report.rollups)} rows")
    if report.dimension not in ("month", "year"):
        click.echo(f"Concentration index: {report.concentration:.3f}")


def _display_diagnostics(report) -> None:
    diagnostics = report.diagnostics
    if diagnostics.dropped_missing_key:
        echo_warning(
            f"{diagnostics.dropped_missing_key} records have no "
            f"{report.dimension.replace('_', ' ')} and are not in the rows above"
        )
    if diagnostics.unparseable_dates:
        echo_warning(f"{diagnostics.unparseable_dates} records have no valid date")
    if diagnostics.unparseable_amounts:
        echo_warning(
            f"{diagnostics.unparseable_amounts} records have unreadable amounts "
            "and are not in the totals"
        )
    if diagnostics.consolidation and diagnostics.consolidation.vendors_merged:
        check = diagnostics.consolidation
        click.echo(
            f"Vendors consolidated: {check.vendors_before} -> {check.vendors_after}"
        )


@click.command("summary")
@click.argument("dimension", type=click.Choice(list(DIMENSIONS)))
@period_options
@click.option("--year", help="Fiscal year (e.g. 2024)")
@click.option("--month", help="Month number (1-12)")
@click.option("--store", help="Store or division ID")
@click.option("--client", help="Client ID")
@click.option("--vendor", help="Vendor ID (duplicates are merged first)")
@click.option("--payment-method", help="Payment method ID")
@click.option("--provider", help="Provider ID")
@click.option("--brand", help="Brand ID")
@click.option("--min-amount", help="Minimum revenue per record")
@click.option("--search", help="Text to match in product, vendor or client names")
@click.option("--positive-only", is_flag=True, help="Ignore returns and zero records")
@click.option("--source", type=click.Choice(SOURCES), help="Records to aggregate (default: lines)")
@click.option("--top", type=int, help="Show only the first N rows")
@click.option("--no-consolidate", is_flag=True, help="Keep duplicate vendor IDs apart")
@click.option("--strict", is_flag=True, help="Fail instead of reporting on partial loads")
@click.pass_context
def summary(
    ctx,
    dimension: str,
    start_date: str,
    end_date: str,
    period_flags: dict[str, bool],
    year: str,
    month: str,
    store: str,
    client: str,
    vendor: str,
    payment_method: str,
    provider: str,
    brand: str,
    min_amount: str,
    search: str,
    positive_only: bool,
    source: str,
    top: int,
    no_consolidate: bool,
    strict: bool,
):
    """Show rollups by DIMENSION (month, vendor, client...)."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    filters = {
        "year": year,
        "month": month,
        "date_from": start,
        "date_to": end,
        "store": store,
        "client": client,
        "vendor": vendor,
        "payment_method": payment_method,
        "provider": provider,
        "brand": brand,
        "min_amount": min_amount,
        "search": search,
        "positive_only": positive_only,
    }

    tables = SALES_TABLES + ((PURCHASE_LINES.code,) if source == "purchases" else ())
    dataset = load_dataset(ctx, tables)
    service = SummaryService(dataset, strict=strict)

    try:
        report = service.summarize(
            dimension,
            filters,
            source=source,
            consolidate_vendors=not no_consolidate,
            top=top,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not report.rollups:
        click.echo("No records found.")
        _display_diagnostics(report)
        return

    _display_report(report, top)
    _display_diagnostics(report)


def register_commands(cli):
    """Register summary command with main CLI."""
    cli.add_command(summary)
