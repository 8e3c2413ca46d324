"""Tests for the extraction fan-in."""

import itertools

import pytest

from petition_ai.schemas.criteria import ALL_CRITERIA
from petition_ai.schemas.extraction import MAX_KEY_EVIDENCE, UnitOutcome
from petition_ai.services.extraction.assembler import assemble_extraction, empty_summary
from petition_ai.utils.item_identity import generate_item_id


def success(criterion_id, data):
    return UnitOutcome(criterion_id=criterion_id, success=True, data=data)


def failure(criterion_id):
    return UnitOutcome(criterion_id=criterion_id, success=False, error="schema validation failed")


@pytest.fixture
def all_outcomes(unit_payload):
    return [success(c, unit_payload(c)) for c in ALL_CRITERIA]


class TestAssembleExtraction:
    """Tests for assemble_extraction."""

    def test_failed_units_get_none_summaries(self, unit_payload):
        """Test units C3 and C7 failing leaves eight populated summaries and two None."""
        outcomes = [
            failure(c) if c in ("C3", "C7") else success(c, unit_payload(c, strength="Strong"))
            for c in ALL_CRITERIA
        ]

        extraction = assemble_extraction(outcomes)

        assert len(extraction.criteria_summary) == 10
        assert [s.criterion_id for s in extraction.criteria_summary] == list(ALL_CRITERIA)
        for summary in extraction.criteria_summary:
            if summary.criterion_id in ("C3", "C7"):
                assert summary.evidence_count == 0
                assert summary.strength == "None"
                assert summary.key_evidence == []
            else:
                assert summary.strength == "Strong"
                assert summary.evidence_count >= 1
        assert extraction.media_coverage == []
        assert extraction.exhibitions == []
        assert len(extraction.awards) == 1

    def test_no_outcomes_yields_ten_empty_summaries(self):
        """Test an empty outcome set still reports every criterion."""
        extraction = assemble_extraction([])
        assert [s.model_dump() for s in extraction.criteria_summary] == [empty_summary(c) for c in ALL_CRITERIA]

    def test_arrival_order_does_not_matter(self, all_outcomes):
        """Test several permutations of arrival order assemble identically."""
        expected = assemble_extraction(all_outcomes).model_dump()
        for perm in itertools.islice(itertools.permutations(all_outcomes), 0, 2000, 97):
            assert assemble_extraction(list(perm)).model_dump() == expected
        assert assemble_extraction(list(reversed(all_outcomes))).model_dump() == expected

    def test_duplicate_items_union_mapped_criteria(self, unit_payload):
        """Test an item reported by two units is kept once with both criteria."""
        shared = {"description": "Platinum record", "mapped_criteria": ["C10"]}
        c5 = unit_payload("C5", items={
            "original_contributions": [],
            "patents": [],
            "grants": [],
        })
        c10 = unit_payload("C10", items={"commercial_success": [shared]})
        c10_again = unit_payload("C10", items={"commercial_success": [{**shared, "mapped_criteria": ["C5", "C10"]}]})

        first = assemble_extraction([success("C10", c10), success("C5", c5)])
        assert first.commercial_success[0].mapped_criteria == ["C10"]

        # Same criterion reported twice: first summary wins, items merged
        merged = assemble_extraction([success("C10", c10_again), success("C10", c10)])
        assert len(merged.commercial_success) == 1
        assert merged.commercial_success[0].mapped_criteria == ["C5", "C10"]

    def test_mapped_criteria_sorted_in_criterion_order(self, unit_payload):
        """Test mapped criteria are ordered C1..C10 numerically, not lexically."""
        payload = unit_payload("C1", items={"awards": [{"name": "A", "mapped_criteria": ["C10", "C2", "C1"]}]})
        extraction = assemble_extraction([success("C1", payload)])
        assert extraction.awards[0].mapped_criteria == ["C1", "C2", "C10"]

    def test_ids_assigned_before_dedup(self, unit_payload):
        """Test items without ids get their identity token and duplicates collapse."""
        award = {"name": "Turing Award", "issuer": "ACM", "year": 2023}
        payload = unit_payload("C1", items={"awards": [dict(award), dict(award)]})

        extraction = assemble_extraction([success("C1", payload)])

        assert len(extraction.awards) == 1
        assert extraction.awards[0].id == generate_item_id("awards", award)

    def test_existing_ids_kept(self, unit_payload):
        """Test a model-supplied id is not replaced."""
        payload = unit_payload("C1", items={"awards": [{"name": "A", "id": "awd_fixed"}]})
        assert assemble_extraction([success("C1", payload)]).awards[0].id == "awd_fixed"

    def test_inputs_not_mutated(self, unit_payload):
        """Test outcome payloads are left untouched."""
        payload = unit_payload("C1", items={"awards": [{"name": "A"}]})
        outcome = success("C1", payload)
        assemble_extraction([outcome])
        assert "id" not in outcome.data["awards"][0]

    def test_unit_arrays_outside_its_criterion_ignored(self, unit_payload):
        """Test a unit only contributes the collections it owns."""
        payload = unit_payload("C1")
        payload["publications"] = [{"title": "Stray"}]
        extraction = assemble_extraction([success("C1", payload)])
        assert extraction.publications == []

    def test_key_evidence_capped(self, unit_payload):
        """Test a unit's key evidence is cut to the first five excerpts."""
        excerpts = [f"Excerpt {i}" for i in range(8)]
        payload = unit_payload("C6", strength="Strong", key_evidence=excerpts)

        extraction = assemble_extraction([success("C6", payload)])

        assert extraction.summary_for("C6").key_evidence == excerpts[:MAX_KEY_EVIDENCE]
        assert len(payload["criteria_summary"]["key_evidence"]) == 8
