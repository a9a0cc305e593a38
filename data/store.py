from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
from collections import Counter
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from core.models import NewsItem, NewsPage
from core.timeutil import iso_stamp, now_ms

log = logging.getLogger(__name__)

SNAPSHOT_FILE = "news-data.json"
BACKUP_DIR = "backups"
SNAPSHOT_VERSION = "1.0"


class StoreError(Exception):
    """A snapshot could not be read or written."""


# ── helpers ──────────────────────────────────────────────────────────


def parse_items(data: object) -> list[NewsItem]:
    """Validate a decoded snapshot (``{"items": [...]}`` or a bare list)."""
    records = data.get("items", []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise StoreError("snapshot has no item list")

    items: list[NewsItem] = []
    for record in records:
        try:
            items.append(NewsItem.model_validate(record))
        except ValidationError as exc:
            log.warning("Skipping malformed stored item: %s", exc.errors()[:1])
    return items


def read_items_file(path: Path) -> list[NewsItem]:
    """Read a snapshot file. A missing file is an empty collection."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise StoreError(f"cannot read {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StoreError(f"corrupt snapshot {path}: {exc}") from exc
    return parse_items(data)


def paginate(
    items: Iterable[NewsItem],
    category: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> NewsPage:
    """Exact category filter, newest first, then slice."""
    filtered = [i for i in items if not category or i.category.value == category]
    filtered.sort(key=lambda i: i.timestamp, reverse=True)
    return NewsPage(
        items=filtered[offset : offset + limit],
        total=len(filtered),
        limit=limit,
        offset=offset,
        has_more=offset + limit < len(filtered),
    )


def compute_stats(items: list[NewsItem]) -> dict:
    """Counts per category and source plus the timestamp range.

    An empty collection reports ``oldest == newest == now``.
    """
    if items:
        stamps = [i.timestamp for i in items]
        date_range = {"oldest": min(stamps), "newest": max(stamps)}
        avg = round(sum(i.score for i in items) / len(items), 1)
    else:
        now = now_ms()
        date_range = {"oldest": now, "newest": now}
        avg = 0.0

    return {
        "total_items": len(items),
        "categories": dict(Counter(i.category.value for i in items)),
        "sources": dict(Counter(i.source for i in items)),
        "average_score": avg,
        "date_range": date_range,
    }


# ── NewsStore ────────────────────────────────────────────────────────


class NewsStore:
    """File-backed keyed collection of news items.

    The whole collection lives in memory in recency order (most recently
    inserted or updated first) and is written out as one snapshot after every
    mutation. Each write first copies the previous snapshot into
    ``backups/``; only the newest ``max_backups`` copies are kept.

    In strict mode read and write failures raise :class:`StoreError`.
    Otherwise they are logged and the store degrades to whatever it holds in
    memory. A read-only store never touches the disk after loading and never
    raises on a corrupt snapshot.
    """

    def __init__(
        self,
        data_dir: str | Path,
        *,
        max_backups: int = 5,
        max_items: int = 1000,
        strict: bool = True,
        read_only: bool = False,
        dedupe_key: str = "id",
    ) -> None:
        if dedupe_key not in ("id", "url"):
            raise ValueError(f"dedupe_key must be 'id' or 'url', got {dedupe_key!r}")
        self.data_dir = Path(data_dir)
        self.snapshot_path = self.data_dir / SNAPSHOT_FILE
        self.backup_dir = self.data_dir / BACKUP_DIR
        self.max_backups = max_backups
        self.max_items = max_items
        self.strict = strict
        self.read_only = read_only
        self.dedupe_key = dedupe_key

        self._items: list[NewsItem] = []
        self._loaded = False
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._items)

    # -- loading -------------------------------------------------------

    async def load(self) -> list[NewsItem]:
        async with self._lock:
            await self._read()
            return list(self._items)

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self._read()

    async def _read(self) -> None:
        try:
            items = await asyncio.to_thread(read_items_file, self.snapshot_path)
        except StoreError:
            if self.strict and not self.read_only:
                raise
            log.exception("Unreadable snapshot, starting empty")
            items = []
        self._items = items[: self.max_items]
        self._loaded = True
        log.debug("Loaded %d items from %s", len(self._items), self.snapshot_path)

    # -- writes --------------------------------------------------------

    def _key(self, item: NewsItem) -> str:
        if self.dedupe_key == "url" and item.url:
            return item.url
        return item.id

    def _apply(self, item: NewsItem) -> bool:
        key = self._key(item)
        before = len(self._items)
        self._items = [i for i in self._items if self._key(i) != key]
        replaced = len(self._items) < before
        self._items.insert(0, item)
        del self._items[self.max_items :]
        return not replaced

    async def upsert(self, item: NewsItem) -> bool:
        """Insert or replace *item*; returns True when its key was new."""
        async with self._lock:
            await self._ensure_loaded()
            previous = self._items
            is_new = self._apply(item)
            await self._commit(previous)
            return is_new

    async def upsert_many(self, items: Iterable[NewsItem]) -> int:
        """Upsert each item in order with a single write. Returns new-key count."""
        async with self._lock:
            await self._ensure_loaded()
            previous = self._items
            new_count = sum(1 for item in items if self._apply(item))
            await self._commit(previous)
            return new_count

    async def bulk_save(self, items: Iterable[NewsItem]) -> None:
        """Replace the whole collection."""
        async with self._lock:
            previous = self._items
            seen: set[str] = set()
            fresh: list[NewsItem] = []
            for item in items:
                key = self._key(item)
                if key in seen:
                    continue
                seen.add(key)
                fresh.append(item)
            self._items = fresh[: self.max_items]
            self._loaded = True
            await self._commit(previous)

    async def prune(self, max_age_ms: int, now: int | None = None) -> int:
        """Drop items older than ``now - max_age_ms``; returns the removed count."""
        cutoff = (now_ms() if now is None else now) - max_age_ms
        async with self._lock:
            await self._ensure_loaded()
            previous = self._items
            self._items = [i for i in previous if i.timestamp >= cutoff]
            removed = len(previous) - len(self._items)
            if removed:
                await self._commit(previous)
                log.info("Pruned %d items older than %d", removed, cutoff)
            return removed

    async def _commit(self, previous: list[NewsItem]) -> None:
        """Persist the current items; on a strict write failure roll back to *previous*."""
        try:
            await self._persist()
        except StoreError:
            self._items = previous
            raise

    async def _persist(self) -> None:
        if self.read_only:
            log.debug("Read-only store, skipping write")
            return
        await asyncio.to_thread(self._write_snapshot, list(self._items))

    def _write_snapshot(self, items: list[NewsItem]) -> None:
        payload = {
            "items": [i.to_dict() for i in items],
            "timestamp": now_ms(),
            "version": SNAPSHOT_VERSION,
        }
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self._backup()
            tmp = self.snapshot_path.with_name(self.snapshot_path.name + ".tmp")
            tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self.snapshot_path)
        except OSError as exc:
            if self.strict:
                raise StoreError(f"cannot write {self.snapshot_path}: {exc}") from exc
            log.error("Failed to write %s: %s", self.snapshot_path, exc)
            return
        self._rotate_backups()

    def _backup(self) -> None:
        if not self.snapshot_path.exists():
            return
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            stamp = iso_stamp()
            target = self.backup_dir / f"backup-{stamp}.json"
            n = 1
            while target.exists():
                target = self.backup_dir / f"backup-{stamp}-{n}.json"
                n += 1
            shutil.copyfile(self.snapshot_path, target)
        except OSError as exc:
            log.warning("Failed to create backup: %s", exc)

    def _rotate_backups(self) -> None:
        try:
            backups = sorted(
                self.backup_dir.glob("backup-*.json"),
                key=lambda p: (p.stat().st_mtime, p.name),
                reverse=True,
            )
            for stale in backups[self.max_backups :]:
                stale.unlink()
        except OSError as exc:
            log.warning("Failed to clean up old backups: %s", exc)

    def backups(self) -> list[Path]:
        """Backup files, newest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(
            self.backup_dir.glob("backup-*.json"),
            key=lambda p: (p.stat().st_mtime, p.name),
            reverse=True,
        )

    # -- reads ---------------------------------------------------------

    async def all(self) -> list[NewsItem]:
        async with self._lock:
            await self._ensure_loaded()
            return list(self._items)

    async def get(self, item_id: str) -> NewsItem | None:
        async with self._lock:
            await self._ensure_loaded()
            return next((i for i in self._items if i.id == item_id), None)

    async def latest(self, limit: int = 20) -> list[NewsItem]:
        async with self._lock:
            await self._ensure_loaded()
            return self._items[:limit]

    async def query(
        self, category: str | None = None, limit: int = 50, offset: int = 0
    ) -> NewsPage:
        async with self._lock:
            await self._ensure_loaded()
            return paginate(self._items, category, limit, offset)

    async def stats(self) -> dict:
        async with self._lock:
            await self._ensure_loaded()
            return compute_stats(self._items)
