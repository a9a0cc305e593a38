"""
Fixtures shared by the News Hub test suite.
"""

from __future__ import annotations

import asyncio

import pytest

from core.aggregator import NewsAggregator
from core.models import NewsItem, ScrapeResult, ScraperConfig
from core.timeutil import MINUTE_MS, now_ms
from data.store import NewsStore
from scrapers.base import BaseScraper
from scrapers.manager import ScraperManager


def make_item(item_id: str = "a", **overrides) -> NewsItem:
    fields = {
        "id": item_id,
        "title": f"Item {item_id}",
        "content": "Some content",
        "source": "Test",
        "url": f"https://example.com/{item_id}",
        "timestamp": now_ms(),
        "category": "General",
        "score": 50,
    }
    fields.update(overrides)
    return NewsItem(**fields)


class FakeScraper(BaseScraper):
    """Scraper returning canned items; records how often it ran."""

    def __init__(
        self,
        name: str = "Fake",
        items: list[NewsItem] | None = None,
        *,
        enabled: bool = True,
        interval: int = 0,
        max_items: int = 10,
        error: Exception | None = None,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ) -> None:
        super().__init__(
            ScraperConfig(
                name=name,
                enabled=enabled,
                interval=interval,
                rate_limit=0,
                max_items=max_items,
            )
        )
        self.items = list(items or [])
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls = 0

    async def scrape(self) -> ScrapeResult:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ScrapeResult(
            source=self.name, items=list(self.items), errors=[], duration_seconds=0.0
        )


class FakeClock:
    def __init__(self, start: int | None = None) -> None:
        self.now = now_ms() if start is None else start

    def __call__(self) -> int:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += int(minutes * MINUTE_MS)


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def scraper_factory():
    return FakeScraper


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def store(data_dir):
    return NewsStore(data_dir, max_backups=3)


@pytest.fixture
def manager(store, clock):
    scrapers = [
        FakeScraper("Reddit", [make_item("reddit-1", source="r/LocalLLaMA")]),
        FakeScraper("GitHub", [make_item("github-abc", source="GitHub")]),
    ]
    return ScraperManager(store, scrapers, retention_days=30, fetch_timeout=5, clock=clock)


@pytest.fixture
def aggregator(store, manager):
    return NewsAggregator(store, manager)
