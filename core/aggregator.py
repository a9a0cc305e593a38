"""Read/write facade used by the API and the CLI."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from core.models import AggregatedNews, NewsItem, NewsPage
from core.timeutil import DAY_MS, now_ms
from data.store import NewsStore, StoreError, compute_stats, paginate, read_items_file
from scrapers.manager import ScraperManager

log = logging.getLogger(__name__)

# Label reported by refresh_data() when live scraping is off.
STATIC_SOURCE_COUNT = 3


class NewsAggregator:
    def __init__(
        self,
        store: NewsStore,
        manager: ScraperManager,
        *,
        static_snapshot: str | Path | None = None,
        live_scraping: bool = True,
    ) -> None:
        self.store = store
        self.manager = manager
        self.static_snapshot = Path(static_snapshot) if static_snapshot else None
        self.live_scraping = live_scraping

    async def _read_static(self) -> list[NewsItem] | None:
        if self.static_snapshot is None or not self.static_snapshot.exists():
            return None
        try:
            return await asyncio.to_thread(read_items_file, self.static_snapshot)
        except StoreError as e:
            log.warning("Could not load static data, using store: %s", e)
            return None

    async def get_news(self) -> list[NewsItem]:
        """Current items: static snapshot if present, else the store.

        Never scrapes; an empty store gives an empty list.
        """
        try:
            items = await self._read_static()
            if items is not None:
                return items
            return await self.store.all()
        except StoreError:
            log.exception("Error fetching news")
            return []

    async def query_news(
        self,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
        refresh: bool = False,
    ) -> NewsPage:
        if refresh:
            items = (await self.refresh_data()).items
        else:
            items = await self.get_news()
        return paginate(items, category, limit, offset)

    async def scrape_sources(self) -> list[NewsItem]:
        if not self.live_scraping:
            log.info("Live scraping disabled, serving existing data")
            return []
        return await self.manager.scrape_all()

    async def refresh_data(self) -> AggregatedNews:
        if not self.live_scraping:
            items = await self.get_news()
            log.info(
                "Data refresh completed. %d items from %d sources (static mode).",
                len(items),
                STATIC_SOURCE_COUNT,
            )
            return AggregatedNews(
                items=items, total_sources=STATIC_SOURCE_COUNT, last_updated=now_ms()
            )

        await self.manager.scrape_all()
        items = await self.get_news()
        return AggregatedNews(
            items=items,
            total_sources=len({i.source for i in items}),
            last_updated=now_ms(),
        )

    async def get_stats(self) -> dict:
        static = await self._read_static()
        if static is None:
            return await self.store.stats()
        return compute_stats(static)

    async def cleanup_old_data(self, days: int = 7) -> int:
        return await self.store.prune(days * DAY_MS)
