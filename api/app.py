from __future__ import annotations

import asyncio
import json
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse
from starlette.exceptions import HTTPException

from api.routers import news, scraper_control, stats
from core.aggregator import NewsAggregator
from core.models import NewsItem
from scrapers.manager import ScraperManager

log = logging.getLogger(__name__)


class Broadcaster:
    """Simple in-memory SSE broadcaster."""

    def __init__(self) -> None:
        self._listeners: list[asyncio.Queue] = []

    async def broadcast(self, data: dict) -> None:
        for q in list(self._listeners):
            try:
                q.put_nowait(data)
            except asyncio.QueueFull:
                pass

    async def news_update(self, items: list[NewsItem]) -> None:
        """Update callback for the scraper manager."""
        log.info("Real-time update: %d new news items added", len(items))
        await self.broadcast(
            {
                "event": "news_update",
                "count": len(items),
                "items": [
                    {
                        "id": i.id,
                        "title": i.title,
                        "source": i.source,
                        "category": i.category.value,
                    }
                    for i in items
                ],
            }
        )

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=50)
        self._listeners.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        if q in self._listeners:
            self._listeners.remove(q)


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status)


def create_app(manager: ScraperManager, aggregator: NewsAggregator) -> FastAPI:
    app = FastAPI(title="News Hub", version="0.1.0")
    broadcaster = Broadcaster()
    app.state.broadcaster = broadcaster
    app.state.manager = manager
    app.state.aggregator = aggregator

    # Register API routers
    app.include_router(news.router)
    app.include_router(scraper_control.router)
    app.include_router(stats.router)

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()))
        return _error(400, f"Invalid request: {where} {first.get('msg', '')}".strip())

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        log.exception("Unhandled error on %s", request.url.path)
        return _error(500, "Internal server error")

    # SSE endpoint
    @app.get("/api/events")
    async def sse_events(request: Request):
        q = broadcaster.subscribe()

        async def event_generator():
            try:
                while True:
                    if await request.is_disconnected():
                        break
                    try:
                        data = await asyncio.wait_for(q.get(), timeout=30.0)
                        yield {"event": "message", "data": json.dumps(data)}
                    except asyncio.TimeoutError:
                        yield {"event": "ping", "data": ""}
            finally:
                broadcaster.unsubscribe(q)

        return EventSourceResponse(event_generator())

    # Health check
    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
