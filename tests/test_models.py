"""Tests for the news item model and the shared heuristics."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.categories import categorize, categorize_repo
from core.models import Category, FetcherStatus, NewsItem
from core.scoring import ForumWeights, HeuristicWeights, clamp_score, forum_score, heuristic_score


class TestNewsItem:
    def test_unknown_category_falls_back_to_general(self, item_factory):
        assert item_factory(category="Gossip").category is Category.GENERAL
        assert item_factory(category=None).category is Category.GENERAL

    def test_category_match_is_case_insensitive(self, item_factory):
        assert item_factory(category="how-to").category is Category.HOW_TO

    def test_blank_title_rejected(self, item_factory):
        with pytest.raises(ValidationError):
            item_factory(title="   ")

    def test_description_alias_and_camel_case_image(self):
        item = NewsItem.model_validate(
            {
                "id": "x-1",
                "title": "Hello",
                "description": "body",
                "source": "Feed",
                "timestamp": 1700000000000.7,
                "imageUrl": "https://img.example.com/a.png",
            }
        )
        assert item.content == "body"
        assert item.timestamp == 1700000000000
        dumped = item.to_dict()
        assert dumped["imageUrl"] == "https://img.example.com/a.png"
        assert dumped["category"] == "General"
        assert "author" not in dumped

    def test_round_trips_through_dict(self, item_factory):
        item = item_factory("rt", author="alice", image_url="https://x/y.png")
        assert NewsItem.model_validate(item.to_dict()) == item

    def test_fetcher_status_camel_case(self):
        status = FetcherStatus(name="Reddit", enabled=True, last_scrape=5)
        assert status.to_dict() == {"name": "Reddit", "enabled": True, "lastScrape": 5}


class TestCategorize:
    def test_first_matching_category_wins(self):
        # "api" (API) is checked before "model" (Models)
        assert categorize("New model API endpoint") is Category.API

    def test_models_keywords(self):
        assert categorize("Llama 4 LLM weights are out") is Category.MODELS

    def test_how_to(self):
        assert categorize("How to fine-tune on one GPU") is Category.HOW_TO

    def test_whole_words_only(self):
        # "maintain" contains "ai", "rapid" contains "api"
        assert categorize("Rapid maintainers wanted") is Category.GENERAL

    def test_default_when_nothing_matches(self):
        assert categorize("Completely unrelated", None) is Category.GENERAL
        assert categorize("", default=Category.TECHNOLOGY) is Category.TECHNOLOGY

    def test_repo_topics(self):
        assert categorize_repo(["api", "llm"], "") is Category.API
        assert categorize_repo(["llm"], "") is Category.MODELS
        assert categorize_repo([], "How to build agents") is Category.HOW_TO
        assert categorize_repo([], None) is Category.GENERAL


class TestScoring:
    def test_forum_linear_weighting(self):
        assert forum_score(100, 0.9) == 98  # floor(80 + 18)
        assert forum_score(0, None) == 0

    def test_forum_weights_are_overridable(self):
        assert forum_score(100, 1.0, ForumWeights(native=1.0, ratio=0.0)) == 100

    def test_heuristic_short_text(self):
        # 50 + 2*2 + 0.5
        assert heuristic_score("Hi", "hello") == 54

    def test_heuristic_is_capped(self):
        assert heuristic_score("A major breakthrough in agents", "x" * 500) == 100

    def test_heuristic_keyword_bonus(self):
        weights = HeuristicWeights(base=0, title_per_char=0, content_divisor=1000)
        assert heuristic_score("critical fix", "", weights) == 25

    def test_clamp(self):
        assert clamp_score(4321) == 100
        assert clamp_score(None) == 0
        assert clamp_score(-3) == 0
