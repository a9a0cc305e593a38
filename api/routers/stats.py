from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import get_aggregator
from core.aggregator import NewsAggregator
from core.timeutil import now_ms

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("")
async def news_stats(aggregator: NewsAggregator = Depends(get_aggregator)):
    stats = await aggregator.get_stats()
    return {
        "success": True,
        "data": {
            "totalItems": stats["total_items"],
            "byCategory": stats["categories"],
            "bySource": stats["sources"],
            "averageScore": stats["average_score"],
            "timeRange": stats["date_range"],
        },
        "timestamp": now_ms(),
    }
