from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from api.deps import get_aggregator
from core.aggregator import NewsAggregator
from core.timeutil import now_ms

router = APIRouter(prefix="/api/news", tags=["news"])


class NewsAction(BaseModel):
    action: str


@router.get("")
async def list_news(
    category: str | None = None,
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    refresh: bool = False,
    aggregator: NewsAggregator = Depends(get_aggregator),
):
    page = await aggregator.query_news(
        category=category or None, limit=limit, offset=offset, refresh=refresh
    )
    return {
        "success": True,
        "data": [i.to_dict() for i in page.items],
        "pagination": page.pagination(),
        "timestamp": now_ms(),
    }


@router.post("")
async def news_action(
    body: NewsAction,
    aggregator: NewsAggregator = Depends(get_aggregator),
):
    if body.action == "refresh":
        result = await aggregator.refresh_data()
        return {
            "success": True,
            "message": "Data refreshed successfully",
            "data": result.to_dict(),
        }
    if body.action == "scrape":
        items = await aggregator.scrape_sources()
        return {
            "success": True,
            "message": "Scraping completed",
            "data": [i.to_dict() for i in items],
        }
    raise HTTPException(400, "Unknown action")
