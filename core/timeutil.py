from __future__ import annotations

import time
from datetime import datetime, timezone

MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * MINUTE_MS


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_iso_ms(value: str | None, default: int | None = None) -> int:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into epoch ms.

    Falls back to *default*, or the current time, when the value is empty or
    unparsable.
    """
    fallback = now_ms() if default is None else default
    if not value:
        return fallback
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return fallback
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def iso_stamp() -> str:
    """Filesystem-safe UTC timestamp, e.g. ``2026-10-19T08-15-02-123456Z``."""
    return (
        datetime.now(timezone.utc)
        .strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    )
