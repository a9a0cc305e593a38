from __future__ import annotations

import asyncio

import pytest

from core.timeutil import DAY_MS
from data.store import StoreError
from scrapers.manager import ScraperManager, default_scrapers


class TestScrapeAll:
    def test_persists_items_from_every_scraper(self, manager, store):
        found = asyncio.run(manager.scrape_all())
        assert sorted(i.id for i in found) == ["github-abc", "reddit-1"]
        assert sorted(i.id for i in asyncio.run(store.all())) == ["github-abc", "reddit-1"]
        assert all(s.last_scrape == manager._clock() for s in manager.scrapers)

    def test_overlapping_call_returns_immediately(self, store, clock, scraper_factory, item_factory):
        async def scenario():
            gate = asyncio.Event()
            slow = scraper_factory("Slow", [item_factory("slow-1")], gate=gate)
            manager = ScraperManager(store, [slow], fetch_timeout=5, clock=clock)

            first = asyncio.create_task(manager.scrape_all())
            while slow.calls == 0:
                await asyncio.sleep(0)
            assert manager.is_running
            second = await manager.scrape_all()
            gate.set()
            return second, await first, slow.calls, manager.is_running

        second, first, calls, running = asyncio.run(scenario())
        assert second == []
        assert [i.id for i in first] == ["slow-1"]
        assert calls == 1
        assert running is False

    def test_disabled_scraper_is_skipped(self, manager):
        manager.disable_scraper("Reddit")
        found = asyncio.run(manager.scrape_all())
        assert [i.id for i in found] == ["github-abc"]
        assert manager.get_scraper("Reddit").calls == 0

    def test_scraper_runs_only_when_interval_elapsed(self, store, clock, scraper_factory, item_factory):
        slow = scraper_factory("Slow", [item_factory("s-1")], interval=30)
        manager = ScraperManager(store, [slow], fetch_timeout=5, clock=clock)

        asyncio.run(manager.scrape_all())
        assert slow.calls == 1
        clock.advance(10)
        asyncio.run(manager.scrape_all())
        assert slow.calls == 1
        clock.advance(25)
        asyncio.run(manager.scrape_all())
        assert slow.calls == 2

    def test_results_capped_at_max_items(self, store, clock, scraper_factory, item_factory):
        chatty = scraper_factory("Chatty", [item_factory(f"c-{n}") for n in range(5)], max_items=2)
        manager = ScraperManager(store, [chatty], fetch_timeout=5, clock=clock)
        found = asyncio.run(manager.scrape_all())
        assert [i.id for i in found] == ["c-0", "c-1"]
        assert len(store) == 2

    def test_duplicate_ids_across_scrapers_merge(self, store, clock, scraper_factory, item_factory):
        a = scraper_factory("A", [item_factory("same", title="From A")])
        b = scraper_factory("B", [item_factory("same", title="From B")])
        manager = ScraperManager(store, [a, b], fetch_timeout=5, clock=clock)
        found = asyncio.run(manager.scrape_all())
        assert [i.title for i in found] == ["From B"]
        assert len(store) == 1

    def test_failing_scraper_does_not_stop_cycle(self, store, clock, scraper_factory, item_factory):
        broken = scraper_factory("Broken", error=RuntimeError("network down"))
        healthy = scraper_factory("Healthy", [item_factory("h-1")])
        manager = ScraperManager(store, [broken, healthy], fetch_timeout=5, clock=clock)

        found = asyncio.run(manager.scrape_all())
        assert [i.id for i in found] == ["h-1"]
        assert broken.last_scrape == 0
        assert healthy.last_scrape == clock.now

    def test_timed_out_scraper_yields_nothing(self, store, clock, scraper_factory, item_factory):
        stuck = scraper_factory("Stuck", [item_factory("x")], delay=1.0)
        manager = ScraperManager(store, [stuck], fetch_timeout=0.05, clock=clock)
        assert asyncio.run(manager.scrape_all()) == []
        assert stuck.last_scrape == 0
        assert len(store) == 0

    def test_store_failure_leaves_scraper_due(self, manager, monkeypatch):
        async def fail(items):
            raise StoreError("disk full")

        monkeypatch.setattr(manager.store, "upsert_many", fail)
        assert asyncio.run(manager.scrape_all()) == []
        assert all(s.last_scrape == 0 for s in manager.scrapers)

    def test_prunes_expired_items(self, manager, store, clock, item_factory):
        asyncio.run(store.upsert(item_factory("ancient", timestamp=clock.now - 31 * DAY_MS)))
        asyncio.run(manager.scrape_all())
        assert asyncio.run(store.get("ancient")) is None


class TestUpdateCallback:
    def test_sync_callback_receives_cycle_items(self, manager):
        received = []
        manager.set_update_callback(received.append)
        asyncio.run(manager.scrape_all())
        assert len(received) == 1
        assert sorted(i.id for i in received[0]) == ["github-abc", "reddit-1"]

    def test_async_callback_is_awaited(self, manager):
        received = []

        async def on_update(items):
            received.extend(items)

        manager.set_update_callback(on_update)
        asyncio.run(manager.scrape_all())
        assert len(received) == 2

    def test_failing_callback_is_contained(self, manager, store):
        def explode(items):
            raise RuntimeError("subscriber gone")

        manager.set_update_callback(explode)
        found = asyncio.run(manager.scrape_all())
        assert len(found) == 2
        assert not manager.is_running

    def test_not_called_when_nothing_found(self, store, clock, scraper_factory):
        received = []
        manager = ScraperManager(store, [scraper_factory("Empty")], fetch_timeout=5, clock=clock)
        manager.set_update_callback(received.append)
        asyncio.run(manager.scrape_all())
        assert received == []


class TestControls:
    def test_enable_disable_round_trip(self, manager):
        assert manager.disable_scraper("GitHub") is True
        assert manager.get_scraper("GitHub").is_enabled() is False
        assert manager.enable_scraper("GitHub") is True
        assert manager.get_scraper("GitHub").is_enabled() is True

    def test_unknown_scraper(self, manager):
        assert manager.enable_scraper("Nope") is False
        assert manager.disable_scraper("Nope") is False
        assert [s.is_enabled() for s in manager.scrapers] == [True, True]

    def test_status(self, manager):
        manager.disable_scraper("Reddit")
        status = [s.to_dict() for s in manager.get_status()]
        assert status == [
            {"name": "Reddit", "enabled": False, "lastScrape": 0},
            {"name": "GitHub", "enabled": True, "lastScrape": 0},
        ]

    def test_duplicate_names_rejected(self, store, scraper_factory):
        with pytest.raises(ValueError):
            ScraperManager(store, [scraper_factory("Same"), scraper_factory("Same")])

    def test_default_scrapers(self):
        assert [s.name for s in default_scrapers()] == ["Reddit", "GitHub", "TechNews"]


class TestScheduling:
    def test_restart_keeps_a_single_timer(self, manager):
        async def scenario():
            manager.start_scheduling(5)
            manager.start_scheduling(10)
            ids = manager.scheduled_job_ids()
            interval = manager.interval_minutes
            manager.stop_scheduling()
            after = manager.scheduled_job_ids()
            scheduling = manager.is_scheduling
            manager.shutdown()
            return ids, interval, after, scheduling

        ids, interval, after, scheduling = asyncio.run(scenario())
        assert ids.count(ScraperManager.INTERVAL_JOB_ID) == 1
        assert interval == 10
        assert after == []
        assert scheduling is False

    def test_stop_without_start_is_noop(self, manager):
        manager.stop_scheduling()
        assert not manager.is_scheduling

    def test_first_cycle_runs_immediately(self, manager, store):
        async def scenario():
            manager.start_scheduling(60)
            for _ in range(200):
                if len(store) == 2:
                    break
                await asyncio.sleep(0.01)
            manager.shutdown()
            return len(store)

        assert asyncio.run(scenario()) == 2
