"""Tests for evidence item identity tokens."""

import pytest

from petition_ai.utils.item_identity import (
    CATEGORY_PREFIXES,
    assign_missing_ids,
    ensure_item_ids,
    generate_item_id,
)


class TestGenerateItemId:
    """Tests for generate_item_id."""

    def test_same_key_fields_same_token(self):
        """Test repeated calls with identical key fields are stable."""
        item = {"title": "Learned Indexes", "venue": "SIGMOD", "year": 2020}
        assert generate_item_id("publications", item) == generate_item_id("publications", dict(item))

    @pytest.mark.parametrize("field,value", [("title", "Learned Indices"), ("venue", "VLDB"), ("year", 2021)])
    def test_changing_any_key_field_changes_token(self, field, value):
        """Test each key field participates in the hash."""
        item = {"title": "Learned Indexes", "venue": "SIGMOD", "year": 2020}
        changed = {**item, field: value}
        assert generate_item_id("publications", item) != generate_item_id("publications", changed)

    def test_non_key_fields_ignored(self):
        """Test fields outside the key set do not affect the token."""
        base = {"name": "Best Paper", "issuer": "ACM", "year": 2021}
        assert generate_item_id("awards", base) == generate_item_id(
            "awards", {**base, "description": "Top paper", "mapped_criteria": ["C1", "C6"]}
        )

    def test_token_format(self):
        """Test prefix and fixed-length hex digest."""
        token = generate_item_id("awards", {"name": "Best Paper"})
        prefix, digest = token.split("_")
        assert prefix == CATEGORY_PREFIXES["awards"]
        assert len(digest) == 8
        int(digest, 16)

    def test_integral_float_year_matches_int(self):
        """Test 2021.0 and 2021 hash the same."""
        assert generate_item_id("awards", {"name": "X", "year": 2021.0}) == generate_item_id(
            "awards", {"name": "X", "year": 2021}
        )

    def test_unknown_category_uses_default_prefix(self):
        """Test unknown categories fall back to the itm prefix."""
        assert generate_item_id("hobbies", {"name": "chess"}).startswith("itm_")

    def test_same_fields_different_category_differ_by_prefix(self):
        """Test category prefix separates otherwise identical keys."""
        item = {"title": "Adaptive codec"}
        assert generate_item_id("patents", item) != generate_item_id("grants", item)


class TestAssignMissingIds:
    """Tests for in-place id assignment."""

    def test_assigns_only_missing(self):
        """Test existing ids are preserved."""
        items = [{"name": "A", "id": "awd_custom"}, {"name": "B"}]
        assert assign_missing_ids("awards", items) is True
        assert items[0]["id"] == "awd_custom"
        assert items[1]["id"] == generate_item_id("awards", {"name": "B"})

    def test_no_change_returns_false(self):
        """Test nothing to do reports False."""
        assert assign_missing_ids("awards", [{"name": "A", "id": "x"}]) is False

    def test_ensure_item_ids_covers_all_collections(self):
        """Test every evidence collection in an extraction dict gets ids."""
        extraction = {
            "awards": [{"name": "A"}],
            "publications": [{"title": "P"}],
            "criteria_summary": [],
        }
        assert ensure_item_ids(extraction) is True
        assert extraction["awards"][0]["id"].startswith("awd_")
        assert extraction["publications"][0]["id"].startswith("pub_")
