"""
News Hub CLI: run the server, a single scrape cycle, or the standalone scheduler.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

import click
import uvicorn

from config.settings import settings
from main import build_services

log = logging.getLogger(__name__)


@click.group()
@click.option(
    "--log-level",
    default=settings.LOG_LEVEL,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level",
)
def main(log_level: str) -> None:
    """News Hub"""
    logging.getLogger().setLevel(getattr(logging, log_level.upper()))


@main.command()
@click.option("--host", default="0.0.0.0")
@click.option("--port", default=settings.DASHBOARD_PORT, type=int)
def serve(host: str, port: int) -> None:
    """Run the HTTP API (schedules scraping on startup)."""
    uvicorn.run("main:app", host=host, port=port, reload=False)


@main.command()
@click.option("--show", default=5, type=int, help="How many new items to list")
def scrape(show: int) -> None:
    """Run one scrape cycle and print what was found."""
    store, manager, _ = build_services()

    async def run():
        await store.load()
        return await manager.scrape_all()

    items = asyncio.run(run())
    click.echo(f"New items found: {len(items)}")
    for n, item in enumerate(items[:show], start=1):
        when = datetime.fromtimestamp(item.timestamp / 1000, tz=timezone.utc)
        click.echo(f"{n}. {item.title}")
        click.echo(f"   Source: {item.source} | Category: {item.category.value}")
        click.echo(f"   Score: {item.score} | Time: {when:%Y-%m-%d %H:%M}")
    if len(items) > show:
        click.echo(f"... and {len(items) - show} more items")


@main.command()
@click.option(
    "--interval",
    default=settings.SCHEDULE_INTERVAL_MINUTES,
    type=click.IntRange(min=1),
    help="Minutes between scrape cycles",
)
def schedule(interval: int) -> None:
    """Scrape on a timer until interrupted."""
    store, manager, _ = build_services()

    async def run():
        await store.load()
        manager.set_update_callback(
            lambda items: log.info("Real-time update: %d new news items added", len(items))
        )
        manager.start_scheduling(interval)
        click.echo(f"Scheduled scraping started (every {interval} minutes). Press Ctrl+C to stop.")
        try:
            await asyncio.Event().wait()
        finally:
            manager.shutdown()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("Scheduler stopped.")


@main.command()
def stats() -> None:
    """Print store statistics as JSON."""
    store, _, aggregator = build_services()

    async def run():
        await store.load()
        return await aggregator.get_stats()

    click.echo(json.dumps(asyncio.run(run()), indent=2))


@main.command()
@click.option("--days", default=settings.RETENTION_DAYS, type=click.IntRange(min=0))
def prune(days: int) -> None:
    """Remove items older than DAYS."""
    store, _, aggregator = build_services()

    async def run():
        await store.load()
        return await aggregator.cleanup_old_data(days)

    removed = asyncio.run(run())
    click.echo(f"Removed {removed} items older than {days} days")


if __name__ == "__main__":
    main()
