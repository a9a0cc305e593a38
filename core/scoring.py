"""Relevance heuristics shared by the fetchers.

Both formulas are placeholder heuristics; the weights live in named, frozen
dataclasses so a fetcher can be built with different values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

MAX_SCORE = 100


@dataclass(frozen=True)
class ForumWeights:
    native: float = 0.8  # multiplier on upvotes
    ratio: float = 20.0  # multiplier on upvote ratio (0..1)


@dataclass(frozen=True)
class HeuristicWeights:
    base: int = 50
    title_per_char: int = 2
    title_cap: int = 30
    content_divisor: int = 10
    content_cap: int = 20
    keyword_bonus: int = 25
    important_keywords: tuple[str, ...] = (
        "breakthrough", "release", "major", "significant", "important", "critical",
    )


def forum_score(native_score: int | float, upvote_ratio: float | None,
                weights: ForumWeights = ForumWeights()) -> int:
    return math.floor(
        (native_score or 0) * weights.native + (upvote_ratio or 0.0) * weights.ratio
    )


def heuristic_score(title: str, content: str,
                    weights: HeuristicWeights = HeuristicWeights()) -> int:
    score = float(weights.base)
    score += min(len(title) * weights.title_per_char, weights.title_cap)
    score += min(len(content) / weights.content_divisor, weights.content_cap)
    text = f"{title} {content}".lower()
    if any(k in text for k in weights.important_keywords):
        score += weights.keyword_bonus
    return int(min(score, MAX_SCORE))


def clamp_score(value: int | float | None) -> int:
    return max(0, min(int(value or 0), MAX_SCORE))
