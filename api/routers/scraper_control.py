from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.deps import get_aggregator, get_manager
from config.settings import settings
from core.aggregator import NewsAggregator
from core.timeutil import now_ms
from scrapers.manager import ScraperManager

router = APIRouter(prefix="/api/scrape", tags=["scraper"])


class ControlRequest(BaseModel):
    action: str
    scraperName: str | None = None
    intervalMinutes: int | None = Field(default=None, ge=1)


@router.post("")
async def trigger_scrape(aggregator: NewsAggregator = Depends(get_aggregator)):
    items = await aggregator.scrape_sources()
    return {
        "success": True,
        "message": f"Scraping completed. Found {len(items)} new items.",
        "items": [i.to_dict() for i in items],
    }


@router.get("")
async def scrape_help():
    return {
        "success": True,
        "message": "Use POST to trigger scraping",
        "endpoints": {
            "scrape": "POST /api/scrape - Trigger manual scraping",
            "status": "GET /api/scrape/status - Get scraper status",
            "control": "POST /api/scrape/status - start, stop, enable, disable",
        },
    }


@router.get("/status")
async def scraper_status(manager: ScraperManager = Depends(get_manager)):
    return {
        "success": True,
        "status": [s.to_dict() for s in manager.get_status()],
        "isScheduling": manager.is_scheduling,
        "timestamp": now_ms(),
    }


@router.post("/status")
async def control_scraper(
    body: ControlRequest,
    manager: ScraperManager = Depends(get_manager),
    aggregator: NewsAggregator = Depends(get_aggregator),
):
    if body.action == "start":
        if not aggregator.live_scraping:
            raise HTTPException(409, "Live scraping disabled")
        minutes = body.intervalMinutes or settings.SCHEDULE_INTERVAL_MINUTES
        manager.start_scheduling(minutes)
        return {"success": True, "message": "Started scheduled scraping"}

    if body.action == "stop":
        manager.stop_scheduling()
        return {"success": True, "message": "Stopped scheduled scraping"}

    if body.action in ("enable", "disable"):
        name = body.scraperName
        if not name:
            raise HTTPException(400, f"Scraper name required for {body.action} action")
        if body.action == "enable":
            found = manager.enable_scraper(name)
        else:
            found = manager.disable_scraper(name)
        verb = "Enabled" if body.action == "enable" else "Disabled"
        message = f"{verb} {name} scraper" if found else f"Scraper {name} not found"
        return {"success": found, "message": message}

    raise HTTPException(400, "Invalid action. Use: start, stop, enable, disable")
