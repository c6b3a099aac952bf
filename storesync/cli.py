"""Store Sync CLI."""

import asyncio

import typer

from storesync.config import Settings, get_settings
from storesync.constants import ANY_STORES, SYNC_CONNECTION, StoreCounter
from storesync.errors import ConfigurationError
from storesync.types.selection import BatchReport, StoreSelection

app = typer.Typer(
    name="storesync",
    help="Synchronize Shopify store data into the local registry",
    no_args_is_help=True,
)


def requested_counts(
    customer_count: bool,
    order_count: bool,
    product_count: bool,
) -> list[StoreCounter]:
    """Counters selected by the console flags, in a fixed order."""
    flags = {
        StoreCounter.CUSTOMER_COUNT: customer_count,
        StoreCounter.ORDER_COUNT: order_count,
        StoreCounter.PRODUCT_COUNT: product_count,
    }
    return [counter for counter, enabled in flags.items() if enabled]


async def update_stores(
    settings: Settings,
    selection: StoreSelection,
    counts: list[StoreCounter],
    connection: str,
) -> BatchReport:
    """Run one UpdateStore batch with process-wide collaborators."""
    from storesync.cache import create_lock_cache
    from storesync.db import close_db, get_engine, init_db
    from storesync.dispatch import BatchDispatcher, strategy_for
    from storesync.jobs import JobRuntime
    from storesync.worker.main import create_transport

    cache = create_lock_cache(settings)
    transport = None if connection == SYNC_CONNECTION else create_transport(settings)
    strategy = strategy_for(connection, transport)
    session_factory = await init_db(get_engine(settings))
    runtime = JobRuntime.create(settings, session_factory, cache=cache)

    try:
        dispatcher = BatchDispatcher(runtime, notify=typer.echo)
        return await dispatcher.run(selection, counts, strategy)
    finally:
        if transport is not None:
            await transport.close()
        await runtime.aclose()
        await close_db()


@app.command("update-stores")
def update_stores_command(
    store_ids: str = typer.Option(ANY_STORES, "--store-ids", help="Comma separated store ids, or 'any'"),
    updated_at_min: str | None = typer.Option(None, "--updated-at-min", help="Only stores updated at or after this timestamp"),
    customer_count: bool = typer.Option(False, "--customer-count", help="Refresh the customer count"),
    order_count: bool = typer.Option(False, "--order-count", help="Refresh the order count"),
    product_count: bool = typer.Option(False, "--product-count", help="Refresh the product count"),
    connection: str = typer.Option(SYNC_CONNECTION, "--connection", help="'sync' to run inline, or a queue connection name"),
):
    """Update Shopify store information."""
    from storesync.observability.logging import setup_logging
    from storesync.observability.tracing import setup_tracing

    settings = get_settings()
    setup_logging(settings)
    if settings.otel_enabled:
        setup_tracing(settings)

    try:
        selection = StoreSelection.from_options(store_ids, updated_at_min)
        counts = requested_counts(customer_count, order_count, product_count)
        report = asyncio.run(update_stores(settings, selection, counts, connection))
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    if not report.ok:
        typer.echo(f"{report.failed} store update(s) failed", err=True)
        raise typer.Exit(1)


@app.command("worker")
def worker_command(
    connection: str = typer.Option("default", "--connection", help="Queue connection to consume"),
    once: bool = typer.Option(False, "--once", help="Process at most one job and exit"),
):
    """Run a worker for queued store jobs."""
    from storesync.worker.main import run

    try:
        run(connection, once=once)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
