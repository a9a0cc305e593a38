"""GitHub scraper: commits and releases of tracked repos, plus topic search."""

from __future__ import annotations

import logging
import time

import httpx

from config.settings import settings, split_csv
from core.categories import categorize_repo
from core.models import Category, NewsItem, ScrapeResult, ScraperConfig
from core.scoring import clamp_score
from core.timeutil import parse_iso_ms
from scrapers.base import BaseScraper

log = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"

COMMIT_SCORE = 75
RELEASE_SCORE = 90


class GitHubScraper(BaseScraper):
    def __init__(
        self,
        config: ScraperConfig | None = None,
        *,
        repos: list[str] | None = None,
        topics: list[str] | None = None,
        include_issues: bool | None = None,
        token: str | None = None,
        commits_per_page: int = 5,
        releases_per_page: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            config
            or ScraperConfig(
                name="GitHub",
                enabled=settings.GITHUB_ENABLED,
                interval=settings.GITHUB_INTERVAL_MINUTES,
                rate_limit=settings.GITHUB_RATE_LIMIT_MS,
                max_items=settings.GITHUB_MAX_ITEMS,
            ),
            transport=transport,
        )
        self.repos = repos if repos is not None else split_csv(settings.GITHUB_REPOS)
        self.topics = topics if topics is not None else split_csv(settings.GITHUB_TOPICS)
        self.include_issues = (
            settings.GITHUB_INCLUDE_ISSUES if include_issues is None else include_issues
        )
        self.token = settings.GITHUB_TOKEN if token is None else token
        self.commits_per_page = commits_per_page
        self.releases_per_page = releases_per_page

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def scrape(self) -> ScrapeResult:
        items: list[NewsItem] = []
        errors: list[str] = []
        t0 = time.monotonic()

        units = [(f"{repo} commits", self._commits, repo) for repo in self.repos]
        units += [(f"{repo} releases", self._releases, repo) for repo in self.repos]
        units += [(f"topic:{t}", self._search_repos, t) for t in self.topics]
        if self.include_issues:
            units += [(f"issues topic:{t}", self._search_issues, t) for t in self.topics]

        async with self.client(self._headers()) as client:
            for label, fn, arg in units:
                try:
                    found = await fn(client, arg)
                    items.extend(found)
                    log.info("GitHub %s: %d items", label, len(found))
                except Exception as exc:
                    msg = f"{label}: {exc}"
                    log.warning("GitHub scrape error: %s", msg)
                    errors.append(msg)

        return ScrapeResult(
            source=self.name,
            items=items,
            errors=errors,
            duration_seconds=time.monotonic() - t0,
        )

    async def _commits(self, client: httpx.AsyncClient, repo: str) -> list[NewsItem]:
        data = await self.get_json(
            client, f"{GITHUB_API}/repos/{repo}/commits",
            params={"per_page": self.commits_per_page},
        )
        items: list[NewsItem] = []
        for commit in data or []:
            try:
                info = commit["commit"]
                message = info.get("message") or ""
                items.append(
                    NewsItem(
                        id=f"github-{commit['sha']}",
                        title=f"New commit: {message.splitlines()[0] if message else commit['sha'][:7]}",
                        content=message,
                        source="GitHub",
                        url=commit.get("html_url") or "",
                        author=(commit.get("author") or {}).get("login")
                        or (info.get("author") or {}).get("name"),
                        timestamp=parse_iso_ms((info.get("author") or {}).get("date")),
                        category=Category.CLAWBOT,
                        score=COMMIT_SCORE,
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue  # skip malformed commits
        return items

    async def _releases(self, client: httpx.AsyncClient, repo: str) -> list[NewsItem]:
        data = await self.get_json(
            client, f"{GITHUB_API}/repos/{repo}/releases",
            params={"per_page": self.releases_per_page},
        )
        items: list[NewsItem] = []
        for release in data or []:
            try:
                name = release.get("name") or release.get("tag_name") or ""
                items.append(
                    NewsItem(
                        id=f"github-release-{release['id']}",
                        title=f"Release: {name}",
                        content=release.get("body") or name,
                        source="GitHub",
                        url=release.get("html_url") or "",
                        author=(release.get("author") or {}).get("login"),
                        timestamp=parse_iso_ms(release.get("published_at")),
                        category=Category.CLAWBOT,
                        score=RELEASE_SCORE,
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return items

    async def _search_repos(self, client: httpx.AsyncClient, topic: str) -> list[NewsItem]:
        data = await self.get_json(
            client, f"{GITHUB_API}/search/repositories",
            params={"q": f"topic:{topic} stars:>100", "sort": "stars", "order": "desc"},
        )
        items: list[NewsItem] = []
        for repo in data.get("items", []):
            try:
                description = repo.get("description") or ""
                owner = repo.get("owner") or {}
                items.append(
                    NewsItem(
                        id=f"github-repo-{repo['id']}",
                        title=f"{repo['full_name']}: {description or 'No description'}",
                        content=description,
                        source="GitHub",
                        url=repo.get("html_url") or "",
                        author=owner.get("login"),
                        timestamp=parse_iso_ms(repo.get("pushed_at") or repo.get("created_at")),
                        category=categorize_repo(repo.get("topics") or [], description),
                        score=clamp_score(repo.get("stargazers_count")),
                        image_url=owner.get("avatar_url"),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return items

    async def _search_issues(self, client: httpx.AsyncClient, topic: str) -> list[NewsItem]:
        data = await self.get_json(
            client, f"{GITHUB_API}/search/issues",
            params={"q": f"{topic} is:issue", "sort": "created", "order": "desc"},
        )
        items: list[NewsItem] = []
        for issue in data.get("items", []):
            try:
                items.append(
                    NewsItem(
                        id=f"github-issue-{issue['id']}",
                        title=issue["title"],
                        content=issue.get("body") or "",
                        source="GitHub Issues",
                        url=issue.get("html_url") or "",
                        author=(issue.get("user") or {}).get("login"),
                        timestamp=parse_iso_ms(issue.get("created_at")),
                        category=Category.API,
                        score=clamp_score((issue.get("reactions") or {}).get("total_count")),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return items
