from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config.settings import settings
from core.models import FetcherStatus, NewsItem
from core.timeutil import DAY_MS, now_ms
from data.store import NewsStore, StoreError
from scrapers.base import BaseScraper
from scrapers.blogs import BlogFeedScraper
from scrapers.github import GitHubScraper
from scrapers.reddit import RedditScraper

log = logging.getLogger(__name__)

UpdateCallback = Callable[[list[NewsItem]], Awaitable[None] | None]


def default_scrapers() -> list[BaseScraper]:
    return [RedditScraper(), GitHubScraper(), BlogFeedScraper()]


class ScraperManager:
    """Runs scrape cycles over a fixed set of fetchers and merges into the store.

    A cycle visits every fetcher in turn. Disabled fetchers and fetchers whose
    own interval has not elapsed are skipped. At most one cycle is in flight;
    a call made while one is running returns ``[]`` straight away. After the
    fetchers, the update callback sees every item persisted in the cycle and
    the store is pruned to the retention window.
    """

    INTERVAL_JOB_ID = "scrape_all"
    STARTUP_JOB_ID = "scrape_all_init"

    def __init__(
        self,
        store: NewsStore,
        scrapers: Iterable[BaseScraper] | None = None,
        *,
        retention_days: int | None = None,
        fetch_timeout: float | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self._scrapers = list(scrapers) if scrapers is not None else default_scrapers()
        names = [s.name for s in self._scrapers]
        if len(set(names)) != len(names):
            raise ValueError(f"scraper names must be unique: {names}")

        days = settings.RETENTION_DAYS if retention_days is None else retention_days
        self.retention_ms = days * DAY_MS
        self.fetch_timeout = (
            settings.FETCH_TIMEOUT_SECONDS if fetch_timeout is None else fetch_timeout
        )
        self._clock = clock
        self._running = False
        self._on_update: UpdateCallback | None = None

        self._scheduler = AsyncIOScheduler()
        self._interval_minutes: int | None = None

    @property
    def scrapers(self) -> tuple[BaseScraper, ...]:
        return tuple(self._scrapers)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_scheduling(self) -> bool:
        return self._interval_minutes is not None

    @property
    def interval_minutes(self) -> int | None:
        return self._interval_minutes

    def set_update_callback(self, callback: UpdateCallback | None) -> None:
        self._on_update = callback

    # -- scrape cycle --------------------------------------------------

    async def scrape_all(self) -> list[NewsItem]:
        if self._running:
            log.info("Scraping already in progress, skipping")
            return []

        self._running = True
        t0 = time.monotonic()
        try:
            merged: dict[str, NewsItem] = {}
            for scraper in self._scrapers:
                for item in await self._run_scraper(scraper):
                    merged[item.id] = item
            new_items = list(merged.values())

            if new_items:
                await self._notify(new_items)

            try:
                removed = await self.store.prune(self.retention_ms, now=self._clock())
                if removed:
                    log.info("Removed %d old news items", removed)
            except StoreError as e:
                log.error("Failed to prune store: %s", e)

            log.info(
                "Scraping completed: %d items in %.1fs",
                len(new_items),
                time.monotonic() - t0,
            )
            return new_items
        finally:
            self._running = False

    async def _run_scraper(self, scraper: BaseScraper) -> list[NewsItem]:
        if not scraper.is_enabled():
            log.debug("Skipping %s: disabled", scraper.name)
            return []
        now = self._clock()
        if not scraper.is_due(now):
            log.debug("Skipping %s: not due", scraper.name)
            return []

        log.info("Starting scrape: %s", scraper.name)
        try:
            result = await asyncio.wait_for(scraper.scrape(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            log.warning("%s timed out after %.0fs", scraper.name, self.fetch_timeout)
            return []
        except Exception:
            log.exception("Error running %s", scraper.name)
            return []

        items = result.items[: scraper.config.max_items]
        try:
            new_count = await self.store.upsert_many(items)
        except StoreError as e:
            log.error("Failed to persist scrape results for %s: %s", scraper.name, e)
            return []
        scraper.mark_scraped(now)

        log.info(
            "Finished scrape: %s | %d items (%d new) | %.1fs | %d errors",
            scraper.name,
            len(items),
            new_count,
            result.duration_seconds,
            len(result.errors),
        )
        return items

    async def _notify(self, items: list[NewsItem]) -> None:
        callback = self._on_update
        if callback is None:
            return
        try:
            outcome = callback(items)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            log.exception("News update callback failed")

    # -- scheduling ----------------------------------------------------

    def start_scheduling(self, interval_minutes: int = 15) -> None:
        """Run ``scrape_all`` now and then every *interval_minutes*.

        Must be called from a running event loop. Calling it again replaces
        the previous timer.
        """
        if self.is_scheduling:
            self.stop_scheduling()
        if not self._scheduler.running:
            self._scheduler.start()

        self._scheduler.add_job(
            self.scrape_all,
            "interval",
            minutes=interval_minutes,
            id=self.INTERVAL_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.add_job(
            self.scrape_all,
            "date",
            run_date=datetime.now(timezone.utc),
            id=self.STARTUP_JOB_ID,
            replace_existing=True,
        )
        self._interval_minutes = interval_minutes
        log.info("Started scheduled scraping every %d minutes", interval_minutes)

    def stop_scheduling(self) -> None:
        if not self.is_scheduling:
            return
        for job_id in (self.INTERVAL_JOB_ID, self.STARTUP_JOB_ID):
            try:
                self._scheduler.remove_job(job_id)
            except JobLookupError:
                pass  # the one-shot job already ran
        self._interval_minutes = None
        log.info("Stopped scheduled scraping")

    def scheduled_job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def shutdown(self) -> None:
        self.stop_scheduling()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    # -- runtime controls ----------------------------------------------

    def get_scraper(self, name: str) -> BaseScraper | None:
        return next((s for s in self._scrapers if s.name == name), None)

    def enable_scraper(self, name: str) -> bool:
        return self._set_enabled(name, True)

    def disable_scraper(self, name: str) -> bool:
        return self._set_enabled(name, False)

    def _set_enabled(self, name: str, enabled: bool) -> bool:
        scraper = self.get_scraper(name)
        if scraper is None:
            log.warning("Scraper %s not found", name)
            return False
        scraper.set_enabled(enabled)
        log.info("%s %s scraper", "Enabled" if enabled else "Disabled", name)
        return True

    def get_status(self) -> list[FetcherStatus]:
        return [
            FetcherStatus(name=s.name, enabled=s.is_enabled(), last_scrape=s.last_scrape)
            for s in self._scrapers
        ]
