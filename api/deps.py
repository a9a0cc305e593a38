"""Accessors for the instances the entry point hands to ``create_app``."""

from __future__ import annotations

from fastapi import Request

from core.aggregator import NewsAggregator
from scrapers.manager import ScraperManager


def get_manager(request: Request) -> ScraperManager:
    return request.app.state.manager


def get_aggregator(request: Request) -> NewsAggregator:
    return request.app.state.aggregator
