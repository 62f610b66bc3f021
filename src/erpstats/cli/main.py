"""Main CLI entry point."""

import click

from erpstats.cli.error_handling import handle_domain_error
from erpstats.config import load_settings
from erpstats.domain.errors import ValidationError
from erpstats.logging_config import configure_logging

# Import and register all commands at module level
from erpstats.cli.commands import duplicates, fetch, profit_audit, summary


@click.group()
@click.option(
    "--api-url",
    help="ERP API base URL (overrides ERPSTATS_API_URL environment variable)",
    envvar="ERPSTATS_API_URL",
)
@click.option(
    "--api-key",
    help="ERP API key (overrides ERPSTATS_API_KEY environment variable)",
    envvar="ERPSTATS_API_KEY",
)
@click.option("--verbose", "-v", is_flag=True, help="Log page progress and diagnostics")
@click.pass_context
def cli(ctx, api_url: str | None, api_key: str | None, verbose: bool):
    """Erpstats - ERP sales reconciliation and statistics.

    Pulls invoices, invoice lines and master data from the ERP API, merges
    duplicate vendors, corrects line profit and prints rollups by dimension.
    """
    ctx.ensure_object(dict)
    configure_logging(verbose)

    # Resolve settings only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None and "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = load_settings(api_url=api_url, api_key=api_key)
        except ValidationError as e:
            handle_domain_error(ctx, e)


# Register all commands
summary.register_commands(cli)
duplicates.register_commands(cli)
profit_audit.register_commands(cli)
fetch.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
