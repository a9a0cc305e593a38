from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    CLAWBOT = "ClawBot"
    API = "API"
    MODELS = "Models"
    HOW_TO = "How-To"
    GENERAL = "General"
    SECURITY = "Security"
    TECHNOLOGY = "Technology"

    @classmethod
    def coerce(cls, value: Any) -> Category:
        """Map any raw value onto a member, falling back to ``GENERAL``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.GENERAL


class NewsItem(BaseModel):
    """A single piece of content normalised from any source."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)  # "<source>-<native id>", the dedupe key
    title: str
    content: str = Field(
        default="", validation_alias=AliasChoices("content", "description")
    )
    source: str  # "Reddit", "r/LocalLLaMA", "GitHub", feed name
    url: str = ""
    author: str | None = None
    timestamp: int  # ms since epoch
    category: Category = Category.GENERAL
    score: int = 0
    image_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("imageUrl", "image_url"),
        serialization_alias="imageUrl",
    )

    @field_validator("title")
    @classmethod
    def _title_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v: Any) -> Category:
        return Category.coerce(v)

    @field_validator("timestamp", "score", mode="before")
    @classmethod
    def _whole_number(cls, v: Any) -> Any:
        if isinstance(v, float):
            return int(v)
        return v

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass
class ScraperConfig:
    """Per-fetcher settings. Only ``enabled`` changes after construction."""

    name: str
    enabled: bool = True
    interval: int = 15  # minutes between this fetcher's own runs
    rate_limit: int = 1000  # ms between outbound requests
    max_items: int = 10  # cap on items persisted per run


@dataclass
class ScrapeResult:
    """Outcome of a single scraper run."""

    source: str
    items: list[NewsItem]
    errors: list[str]
    duration_seconds: float


@dataclass
class FetcherStatus:
    name: str
    enabled: bool
    last_scrape: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "enabled": self.enabled,
            "lastScrape": self.last_scrape,
        }


@dataclass
class NewsPage:
    items: list[NewsItem]
    total: int
    limit: int
    offset: int
    has_more: bool

    def pagination(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "hasMore": self.has_more,
        }


@dataclass
class AggregatedNews:
    items: list[NewsItem] = field(default_factory=list)
    total_sources: int = 0
    last_updated: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "totalSources": self.total_sources,
            "lastUpdated": self.last_updated,
        }
