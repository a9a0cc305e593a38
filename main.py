"""News Hub entry point."""

from __future__ import annotations

import logging
import os

import certifi
import uvicorn

# Fix SSL cert resolution for curl_cffi (used by Scrapling)
os.environ.setdefault("CURL_CA_BUNDLE", certifi.where())
os.environ.setdefault("SSL_CERT_FILE", certifi.where())

from api.app import create_app  # noqa: E402
from config.settings import settings  # noqa: E402
from core.aggregator import NewsAggregator  # noqa: E402
from data.store import NewsStore  # noqa: E402
from scrapers.manager import ScraperManager  # noqa: E402

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
log = logging.getLogger(__name__)


def build_services() -> tuple[NewsStore, ScraperManager, NewsAggregator]:
    store = NewsStore(
        settings.DATA_DIR,
        max_backups=settings.STORE_MAX_BACKUPS,
        max_items=settings.STORE_MAX_ITEMS,
        strict=settings.STORE_STRICT,
        read_only=settings.READ_ONLY,
        dedupe_key=settings.STORE_DEDUPE_KEY,
    )
    manager = ScraperManager(store)
    aggregator = NewsAggregator(
        store,
        manager,
        static_snapshot=settings.STATIC_SNAPSHOT_PATH or None,
        live_scraping=settings.LIVE_SCRAPING,
    )
    return store, manager, aggregator


store, manager, aggregator = build_services()
app = create_app(manager, aggregator)


@app.on_event("startup")
async def on_startup() -> None:
    log.info("Loading news store from %s…", store.data_dir)
    await store.load()

    manager.set_update_callback(app.state.broadcaster.news_update)
    if settings.LIVE_SCRAPING and settings.SCHEDULE_ON_STARTUP:
        log.info("Starting scrape scheduler…")
        manager.start_scheduling(settings.SCHEDULE_INTERVAL_MINUTES)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    manager.shutdown()
    log.info("Scrape scheduler stopped.")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.DASHBOARD_PORT,
        reload=False,
    )
