"""Blog / feed scraper.

RSS and Atom feeds are fetched with httpx and parsed with feedparser, JSON
Feed payloads are read directly, and ``web`` sources (sites with no feed) are
scraped with a CSS selector through scrapling.
"""

from __future__ import annotations

import asyncio
import calendar
import hashlib
import logging
import re
import time
from dataclasses import dataclass
from typing import Any

import feedparser
import httpx
from bs4 import BeautifulSoup
from scrapling import Fetcher

from config.settings import settings, split_csv
from core.categories import categorize
from core.models import Category, NewsItem, ScrapeResult, ScraperConfig
from core.scoring import HeuristicWeights, heuristic_score
from core.timeutil import now_ms, parse_iso_ms
from scrapers.base import BaseScraper

log = logging.getLogger(__name__)

FEED_TYPES = ("rss", "atom", "json", "web")


@dataclass
class FeedSource:
    name: str
    url: str
    type: str = "rss"
    category: str | None = None  # pins every item of the feed to one category
    selector: str | None = None  # ``web`` only: CSS selector of article links
    base_url: str = ""  # ``web`` only: prefix for relative links


BLOG_FEED_CONFIGS: dict[str, FeedSource] = {
    "oreilly_radar": FeedSource("O'Reilly Radar", "https://feeds.feedburner.com/oreilly/radar"),
    "techcrunch": FeedSource("TechCrunch", "https://techcrunch.com/feed/"),
    "smashing_magazine": FeedSource("Smashing Magazine", "https://www.smashingmagazine.com/feed/"),
    "hackernews": FeedSource(
        "Hacker News",
        "https://news.ycombinator.com/",
        type="web",
        selector=".titleline > a",
    ),
}

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-")


def clean_html(html: str) -> str:
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(" ")
    return " ".join(text.split())


def _entry_ms(entry: Any) -> int:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return calendar.timegm(parsed) * 1000
    return now_ms()


class BlogFeedScraper(BaseScraper):
    def __init__(
        self,
        config: ScraperConfig | None = None,
        *,
        feeds: list[FeedSource] | None = None,
        max_items_per_feed: int | None = None,
        weights: HeuristicWeights | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            config
            or ScraperConfig(
                name="TechNews",
                enabled=settings.BLOG_ENABLED,
                interval=settings.BLOG_INTERVAL_MINUTES,
                rate_limit=settings.BLOG_RATE_LIMIT_MS,
                max_items=settings.BLOG_MAX_ITEMS,
            ),
            transport=transport,
        )
        if feeds is None:
            enabled = split_csv(settings.BLOG_FEEDS)
            feeds = [v for k, v in BLOG_FEED_CONFIGS.items() if k in enabled]
        for feed in feeds:
            if feed.type not in FEED_TYPES:
                raise ValueError(f"{feed.name}: unknown feed type {feed.type!r}")
        self.feeds = feeds
        self.max_items_per_feed = max_items_per_feed or settings.BLOG_MAX_ITEMS_PER_FEED
        self.weights = weights or HeuristicWeights()

    async def scrape(self) -> ScrapeResult:
        items: list[NewsItem] = []
        errors: list[str] = []
        start = time.monotonic()

        async with self.client({"Accept": "application/rss+xml, application/atom+xml, "
                                          "application/feed+json, application/json, */*"}) as client:
            for feed in self.feeds:
                try:
                    if feed.type == "json":
                        found = await self._json_feed(client, feed)
                    elif feed.type == "web":
                        async with self._limiter.slot():
                            found = await asyncio.to_thread(self._web_page, feed)
                    else:
                        found = await self._xml_feed(client, feed)
                    items.extend(found[: self.max_items_per_feed])
                    log.info("Scraped %s: %d entries", feed.name, len(found))
                except Exception as e:
                    msg = f"{feed.name}: {e}"
                    log.warning("Feed scrape error: %s", msg)
                    errors.append(msg)

        return ScrapeResult(
            source=self.name,
            items=items,
            errors=errors,
            duration_seconds=time.monotonic() - start,
        )

    def _make_item(
        self,
        feed: FeedSource,
        native_id: str,
        title: str,
        body: str,
        link: str,
        author: str | None,
        timestamp: int,
    ) -> NewsItem | None:
        title = clean_html(title)
        if not title:
            return None
        content = clean_html(body)
        digest = hashlib.md5((native_id or link or title).encode()).hexdigest()[:16]
        category = (
            Category.coerce(feed.category)
            if feed.category
            else categorize(title, content)
        )
        return NewsItem(
            id=f"{slugify(feed.name)}-{digest}",
            title=title,
            content=content,
            source=feed.name,
            url=link,
            author=author or None,
            timestamp=timestamp,
            category=category,
            score=heuristic_score(title, content, self.weights),
        )

    async def _xml_feed(self, client: httpx.AsyncClient, feed: FeedSource) -> list[NewsItem]:
        resp = await self.fetch(client, feed.url)
        parsed = feedparser.parse(resp.content)
        if parsed.bozo and not parsed.entries:
            raise ValueError(f"unparsable feed: {parsed.bozo_exception}")

        items: list[NewsItem] = []
        for entry in parsed.entries:
            try:
                body = entry.get("summary") or ""
                if not body and entry.get("content"):
                    body = entry["content"][0].get("value", "")
                item = self._make_item(
                    feed,
                    entry.get("id") or "",
                    entry.get("title") or "",
                    body,
                    entry.get("link") or "",
                    entry.get("author"),
                    _entry_ms(entry),
                )
            except (TypeError, ValueError, IndexError):
                continue  # skip malformed entries
            if item is not None:
                items.append(item)
        return items

    async def _json_feed(self, client: httpx.AsyncClient, feed: FeedSource) -> list[NewsItem]:
        data = await self.get_json(client, feed.url)
        items: list[NewsItem] = []
        for entry in data.get("items", []):
            try:
                author = entry.get("author")
                if not author and entry.get("authors"):
                    author = entry["authors"][0]
                if isinstance(author, dict):
                    author = author.get("name")
                body = (
                    entry.get("content_html")
                    or entry.get("content_text")
                    or entry.get("content")
                    or entry.get("summary")
                    or ""
                )
                item = self._make_item(
                    feed,
                    str(entry.get("id") or ""),
                    entry.get("title") or "",
                    body,
                    entry.get("url") or "",
                    author,
                    parse_iso_ms(entry.get("date_published")),
                )
            except (AttributeError, TypeError, ValueError, IndexError):
                continue
            if item is not None:
                items.append(item)
        return items

    def _web_page(self, feed: FeedSource) -> list[NewsItem]:
        if not feed.selector:
            raise ValueError("web feed needs a selector")
        page = Fetcher().get(feed.url, stealthy_headers=True, follow_redirects=True)
        if page.status != 200:
            raise ConnectionError(f"HTTP {page.status}")

        items: list[NewsItem] = []
        seen_urls: set[str] = set()
        fetched_at = now_ms()

        for el in page.css(feed.selector):
            title = el.text.strip() if el.text else ""
            link = el.attrib.get("href", "")

            if not title or len(title) < 15 or " " not in title:
                continue
            if link and not link.startswith("http"):
                link = f"{feed.base_url}{link}" if feed.base_url else link
            if link in seen_urls:
                continue
            seen_urls.add(link)

            item = self._make_item(feed, link, title, "", link, None, fetched_at)
            if item is not None:
                items.append(item)
        return items
