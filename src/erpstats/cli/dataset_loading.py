"""Loading ERP data from within CLI commands."""

import asyncio
from typing import Iterable

import click

from erpstats.api.factories import create_api_client, create_fetcher
from erpstats.cli.error_handling import echo_warning, handle_domain_error
from erpstats.domain.entities import Dataset, FetchResult
from erpstats.domain.errors import DomainError
from erpstats.domain.loader import DatasetLoader
from erpstats.utils.cache import TTLCache


def _loader_for(settings, client) -> DatasetLoader:
    return DatasetLoader(create_fetcher(client, settings), TTLCache(settings.cache_ttl))


async def _load(settings, tables: tuple[str, ...]) -> Dataset:
    async with create_api_client(settings) as client:
        return await _loader_for(settings, client).load(tables)


async def _fetch(settings, tables: tuple[str, ...]) -> dict[str, FetchResult]:
    async with create_api_client(settings) as client:
        return await _loader_for(settings, client).fetch_tables(tables)


def load_dataset(ctx: click.Context, tables: Iterable[str]) -> Dataset:
    """Load ``tables`` for a command, or reuse a dataset placed in ``ctx.obj``.

    Domain errors are rendered and end the command.
    """
    dataset = ctx.obj.get("dataset")
    if dataset is None:
        try:
            dataset = asyncio.run(_load(ctx.obj["settings"], tuple(tables)))
        except DomainError as e:
            handle_domain_error(ctx, e)

    for table in dataset.partial_tables:
        result = dataset.fetch_results[table]
        echo_warning(
            f"{table} loaded partially ({len(result.records)} of {result.total_count} records)"
        )
    return dataset


def fetch_tables(ctx: click.Context, tables: Iterable[str]) -> dict[str, FetchResult]:
    """Fetch raw tables for a command."""
    try:
        return asyncio.run(_fetch(ctx.obj["settings"], tuple(tables)))
    except DomainError as e:
        handle_domain_error(ctx, e)
