from __future__ import annotations

import re

from core.models import Category

# Checked in order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.API: ("api", "endpoint", "rest", "graphql", "http", "websocket", "rpc"),
    Category.MODELS: (
        "model", "models", "ai", "ml", "machine learning", "llm", "llms",
        "gpt", "claude", "transformer", "neural",
    ),
    Category.HOW_TO: (
        "how to", "how-to", "tutorial", "guide", "step by step", "walkthrough",
        "learn",
    ),
    Category.CLAWBOT: ("clawbot", "openclaw", "bot", "automation", "assistant"),
    Category.GENERAL: ("news", "update", "release", "announcement", "product", "feature"),
}


def _compile(keywords: tuple[str, ...]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"(?<![a-z0-9])(?:{alternation})(?![a-z0-9])")


_PATTERNS = {cat: _compile(words) for cat, words in CATEGORY_KEYWORDS.items()}


def categorize(*texts: str | None, default: Category = Category.GENERAL) -> Category:
    """Assign a category by whole-word keyword match over the given texts."""
    haystack = " ".join(t for t in texts if t).lower()
    if not haystack:
        return default
    for category, pattern in _PATTERNS.items():
        if pattern.search(haystack):
            return category
    return default


def categorize_repo(topics: list[str], description: str | None) -> Category:
    """Category for a repository search hit, driven by its topics first."""
    topic_set = {t.lower() for t in topics or []}
    desc = (description or "").lower()
    if "api" in topic_set:
        return Category.API
    if topic_set & {"machine-learning", "ai", "llm"}:
        return Category.MODELS
    if topic_set & {"tutorial", "guide"} or "how to" in desc:
        return Category.HOW_TO
    return Category.GENERAL
