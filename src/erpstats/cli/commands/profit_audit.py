"""Profit audit commands."""

import click

from erpstats.api.tables import INVOICE_LINES
from erpstats.cli.dataset_loading import load_dataset
from erpstats.domain.summary import SummaryService


@click.command("profit-audit")
@click.option("--tolerance", type=float, default=0.01, show_default=True, help="Allowed difference")
@click.option("--samples", type=int, default=10, show_default=True, help="Discrepancies to list")
@click.pass_context
def profit_audit(ctx, tolerance: float, samples: int):
    """Compare the stored line profit with revenue minus cost."""
    dataset = load_dataset(ctx, (INVOICE_LINES.code,))
    audit = SummaryService(dataset).profit_audit(tolerance=tolerance, sample_size=samples)

    if audit.total == 0:
        click.echo("No invoice lines found.")
        return

    click.echo(f"Lines checked:  {audit.total}")
    click.echo(f"Consistent:     {audit.consistent} ({audit.consistent_pct:.1f}%)")
    click.echo(f"Inconsistent:   {audit.inconsistent}")

    if audit.samples:
        click.echo("\nDiscrepancies:")
        click.echo("-" * 80)
        click.echo(f"{'Line':<10} {'Invoice':<10} {'Product':<28} {'Stored':>14} {'Corrected':>14}")
        click.echo("-" * 80)
        for sample in audit.samples:
            product = (sample.product_name or "")[:28]
            click.echo(
                f"{str(sample.line_id):<10} {str(sample.invoice_id):<10} {product:<28} "
                f"{sample.stored_profit:>14,.2f} {sample.corrected_profit:>14,.2f}"
            )


def register_commands(cli):
    """Register profit-audit command with main CLI."""
    cli.add_command(profit_audit)
