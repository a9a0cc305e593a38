"""Reddit scraper using httpx (JSON API)."""

from __future__ import annotations

import logging
import time
from urllib.parse import urlparse

import httpx

from config.settings import settings, split_csv
from core.categories import categorize
from core.models import NewsItem, ScrapeResult, ScraperConfig
from core.scoring import ForumWeights, forum_score
from scrapers.base import BaseScraper

log = logging.getLogger(__name__)

REDDIT_BASE = "https://www.reddit.com"


def _is_internal(url: str) -> bool:
    host = urlparse(url).netloc.lower()
    return (
        not host
        or host in ("reddit.com", "redd.it")
        or host.endswith(".reddit.com")
        or host.endswith(".redd.it")
    )


class RedditScraper(BaseScraper):
    def __init__(
        self,
        config: ScraperConfig | None = None,
        *,
        subreddits: list[str] | None = None,
        listing: str | None = None,
        limit: int | None = None,
        weights: ForumWeights | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            config
            or ScraperConfig(
                name="Reddit",
                enabled=settings.REDDIT_ENABLED,
                interval=settings.REDDIT_INTERVAL_MINUTES,
                rate_limit=settings.REDDIT_RATE_LIMIT_MS,
                max_items=settings.REDDIT_MAX_ITEMS,
            ),
            transport=transport,
        )
        self.subreddits = subreddits if subreddits is not None else split_csv(settings.REDDIT_SUBREDDITS)
        self.listing = listing or settings.REDDIT_LISTING
        self.limit = limit or settings.REDDIT_LIMIT
        self.weights = weights or ForumWeights(
            native=settings.REDDIT_SCORE_WEIGHT, ratio=settings.REDDIT_RATIO_WEIGHT
        )

    async def scrape(self) -> ScrapeResult:
        items: list[NewsItem] = []
        errors: list[str] = []
        t0 = time.monotonic()

        async with self.client() as client:
            for sub in self.subreddits:
                try:
                    data = await self.get_json(
                        client,
                        f"{REDDIT_BASE}/r/{sub}/{self.listing}.json",
                        params={"limit": self.limit, "raw_json": 1},
                    )
                    children = data.get("data", {}).get("children", [])
                    for child in children:
                        item = self._to_item(sub, child.get("data", {}))
                        if item is not None:
                            items.append(item)
                    log.info("r/%s: %d posts fetched", sub, len(children))

                except Exception as exc:
                    msg = f"r/{sub}: {exc}"
                    log.warning(msg)
                    errors.append(msg)

        return ScrapeResult(
            source=self.name,
            items=items,
            errors=errors,
            duration_seconds=time.monotonic() - t0,
        )

    def _to_item(self, sub: str, post: dict) -> NewsItem | None:
        title = (post.get("title") or "").strip()
        link = post.get("url") or ""
        if not title or not post.get("id") or _is_internal(link):
            return None

        selftext = post.get("selftext") or ""
        thumb = post.get("thumbnail") or ""
        try:
            return NewsItem(
                id=f"reddit-{post['id']}",
                title=title,
                content=selftext or title,
                source=f"r/{sub}",
                url=link,
                author=post.get("author"),
                timestamp=int(float(post.get("created_utc") or time.time()) * 1000),
                category=categorize(title, selftext),
                score=forum_score(post.get("score", 0), post.get("upvote_ratio"), self.weights),
                image_url=thumb if thumb.startswith("http") else None,
            )
        except (ValueError, TypeError):
            log.debug("Skipping malformed post in r/%s: %s", sub, post.get("id"))
            return None
