from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage
    DATA_DIR: str = "./var"
    STORE_MAX_BACKUPS: int = 5
    STORE_MAX_ITEMS: int = 1000
    STORE_STRICT: bool = True
    STORE_DEDUPE_KEY: str = "id"
    READ_ONLY: bool = False

    # Serving
    STATIC_SNAPSHOT_PATH: str = ""
    LIVE_SCRAPING: bool = True
    DASHBOARD_PORT: int = 8001
    LOG_LEVEL: str = "INFO"

    # Scheduling
    SCHEDULE_INTERVAL_MINUTES: int = 15
    SCHEDULE_ON_STARTUP: bool = True
    RETENTION_DAYS: int = 30
    FETCH_TIMEOUT_SECONDS: float = 30.0
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    USER_AGENT: str = "Mozilla/5.0 (compatible; NewsAggregator/1.0)"

    # Reddit
    REDDIT_ENABLED: bool = True
    REDDIT_SUBREDDITS: str = "LocalLLaMA"
    REDDIT_LISTING: str = "new"
    REDDIT_LIMIT: int = 10
    REDDIT_INTERVAL_MINUTES: int = 30
    REDDIT_RATE_LIMIT_MS: int = 2000
    REDDIT_MAX_ITEMS: int = 10
    REDDIT_SCORE_WEIGHT: float = 0.8
    REDDIT_RATIO_WEIGHT: float = 20.0

    # GitHub
    GITHUB_ENABLED: bool = True
    GITHUB_REPOS: str = "openclaw/openclaw"
    GITHUB_TOPICS: str = ""
    GITHUB_INCLUDE_ISSUES: bool = False
    GITHUB_TOKEN: str = ""
    GITHUB_INTERVAL_MINUTES: int = 60
    GITHUB_RATE_LIMIT_MS: int = 1000
    GITHUB_MAX_ITEMS: int = 5

    # Blogs
    BLOG_ENABLED: bool = True
    BLOG_FEEDS: str = "oreilly_radar,techcrunch,smashing_magazine"
    BLOG_MAX_ITEMS_PER_FEED: int = 2
    BLOG_INTERVAL_MINUTES: int = 120
    BLOG_RATE_LIMIT_MS: int = 3000
    BLOG_MAX_ITEMS: int = 8

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def split_csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


settings = Settings()
