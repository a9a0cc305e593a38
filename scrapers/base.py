from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from config.settings import settings
from core.models import ScrapeResult, ScraperConfig
from core.timeutil import MINUTE_MS


class RateLimiter:
    """Minimum spacing between the outbound requests of one fetcher.

    The spacing is measured from the moment the previous request finished,
    whether it succeeded or not.
    """

    def __init__(self, delay_seconds: float = 2.0) -> None:
        self._delay = delay_seconds
        self._lock = asyncio.Lock()
        self._last_request: float | None = None

    def required_delay(self, now: float) -> float:
        if self._last_request is None:
            return 0.0
        return max(0.0, self._delay - (now - self._last_request))

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._lock:
            delay = self.required_delay(time.monotonic())
            if delay > 0:
                await asyncio.sleep(delay)
            try:
                yield
            finally:
                self._last_request = time.monotonic()


class BaseScraper(ABC):
    """One source fetcher.

    ``scrape()`` must catch failures per unit of work (subreddit, repo, feed)
    and report them in ``ScrapeResult.errors``; anything it still raises is
    treated by the manager as zero items for the run.
    """

    def __init__(
        self,
        config: ScraperConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self.config = config
        self.last_scrape = 0  # ms since epoch, 0 = never
        self._limiter = RateLimiter(config.rate_limit / 1000)
        self._transport = transport
        self._timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS

    @property
    def name(self) -> str:
        return self.config.name

    def is_enabled(self) -> bool:
        return self.config.enabled

    def set_enabled(self, enabled: bool) -> None:
        self.config.enabled = enabled

    def is_due(self, now: int) -> bool:
        return now - self.last_scrape >= self.config.interval * MINUTE_MS

    def mark_scraped(self, now: int) -> None:
        self.last_scrape = now

    @abstractmethod
    async def scrape(self) -> ScrapeResult:
        """Fetch and normalise one batch of items."""
        ...

    def client(self, headers: dict[str, str] | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": settings.USER_AGENT, **(headers or {})},
            follow_redirects=True,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        async with self._limiter.slot():
            resp = await client.get(url, params=params)
        resp.raise_for_status()
        return resp

    async def get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return (await self.fetch(client, url, params)).json()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} enabled={self.is_enabled()}>"
