"""Category suggestion and tag generation for user posts."""
from unittest.mock import MagicMock

import pytest

from database import COLL_CATEGORY
from enrichment import ContentEnricher
from errors import AIClientError


@pytest.fixture
def enricher(db, technology):
    db[COLL_CATEGORY].insert_one({"name": "World", "slug": "world", "is_active": True})
    db[COLL_CATEGORY].insert_one({"name": "Sports", "slug": "sports", "is_active": False})
    return ContentEnricher(MagicMock(), db, ["Technology", "World", "Sports"])


class TestCategorize:
    def test_exact_match_is_case_insensitive(self, enricher, technology):
        enricher.ai.generate.return_value = "  technology\n"
        assert enricher.categorize("new phones") == [technology["_id"]]

    def test_name_inside_sentence(self, enricher, technology):
        enricher.ai.generate.return_value = "The best category is Technology."
        assert enricher.categorize("new phones") == [technology["_id"]]

    def test_unknown_answer_gives_empty_list(self, enricher):
        enricher.ai.generate.return_value = "Cooking"
        assert enricher.categorize("pasta") == []

    def test_inactive_category_is_not_matched(self, enricher):
        enricher.ai.generate.return_value = "Sports"
        assert enricher.categorize("match report") == []

    def test_model_error_gives_empty_list(self, enricher):
        enricher.ai.generate.side_effect = AIClientError("down")
        assert enricher.categorize("anything") == []

    def test_prompt_lists_topics(self, enricher):
        enricher.ai.generate.return_value = "World"
        enricher.categorize("summit")
        prompt = enricher.ai.generate.call_args[0][0]
        assert "Technology, World, Sports" in prompt


class TestGenerateTags:
    def test_filters_long_and_empty_tags(self, enricher):
        enricher.ai.generate.return_value = "AI, , robotics, averyveryverylongtagname"
        assert enricher.generate_tags("robots") == ["ai", "robotics"]

    def test_model_error_gives_no_tags(self, enricher):
        enricher.ai.generate.side_effect = AIClientError("down")
        assert enricher.generate_tags("robots") == []
