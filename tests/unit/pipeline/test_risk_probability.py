"""Tests for the two-pass risk probability stage."""

import pytest

from petition_ai.schemas.stages import EvidenceInventory, RiskPass1, RiskPass2
from petition_ai.services.pipeline.context_builder import GAP_ANALYSIS, RISK_PROBABILITY, STRENGTH_EVALUATION
from petition_ai.services.pipeline.stage_gate import PipelineStageGate
from petition_ai.services.pipeline.risk_probability import (
    FLOOR_FACTOR,
    NO_RECOMMENDERS_FACTOR,
    enforce_pass1_rules,
    evidence_floor,
    filing_recommendation_for,
    normalize_pass2,
    rfe_probability_for,
    risk_level_for,
)

from conftest import STAGE_REPLIES

FULL_INVENTORY = EvidenceInventory(
    document_count=4, recommender_count=3, has_profile=True, has_extraction=True, criteria_with_evidence=5,
)


def pass1_payload(**overrides):
    payload = dict(STAGE_REPLIES["Perform a qualitative denial probability assessment"])
    payload.update(overrides)
    return RiskPass1.model_validate(payload)


def pass2_payload(base=30, adjustments=None):
    payload = dict(STAGE_REPLIES["Compute probability breakdown"])
    payload["probability_breakdown"] = {
        "base_denial_rate": base,
        "adjustments": adjustments if adjustments is not None else [],
        "final_denial_probability": 0,
    }
    return RiskPass2.model_validate(payload)


class TestThresholds:
    """Tests for the fixed probability thresholds."""

    @pytest.mark.parametrize(
        "probability,expected",
        [(5, "LOW"), (19, "LOW"), (20, "MEDIUM"), (39, "MEDIUM"), (40, "HIGH"), (60, "HIGH"), (61, "VERY_HIGH")],
    )
    def test_risk_level(self, probability, expected):
        assert risk_level_for(probability) == expected

    @pytest.mark.parametrize(
        "probability,expected",
        [
            (14, "FILE_NOW"),
            (15, "FILE_WITH_CAUTION"),
            (29, "FILE_WITH_CAUTION"),
            (30, "STRENGTHEN_FIRST"),
            (50, "MAJOR_GAPS"),
            (70, "MAJOR_GAPS"),
            (71, "CONSIDER_ALTERNATIVE"),
        ],
    )
    def test_filing_recommendation(self, probability, expected):
        assert filing_recommendation_for(probability) == expected

    @pytest.mark.parametrize("probability,expected", [(5, 8), (10, 15), (40, 60), (60, 90), (95, 90)])
    def test_rfe_probability(self, probability, expected):
        assert rfe_probability_for(probability) == expected


class TestNormalizePass2:
    """Tests for pass 2 normalization."""

    def test_final_is_base_plus_adjustments(self):
        """Test model-supplied final and derived fields are recomputed."""
        result = normalize_pass2(
            pass2_payload(30, [{"factor": "Major award", "delta_pct": -10}, {"factor": "Few letters", "delta_pct": 5}]),
            FULL_INVENTORY,
        )

        breakdown = result.probability_breakdown
        assert breakdown.final_denial_probability == 25
        assert result.overall_assessment.denial_probability_pct == 25
        assert result.overall_assessment.rfe_probability_pct == 38
        assert result.overall_assessment.risk_level == "MEDIUM"
        assert result.filing_recommendation.recommendation == "FILE_WITH_CAUTION"
        assert result.filing_recommendation.rationale == "Ready"

    def test_clamped_low(self):
        """Test the final probability never drops below 5."""
        result = normalize_pass2(pass2_payload(10, [{"factor": "Nobel Prize", "delta_pct": -40}]), FULL_INVENTORY)
        assert result.probability_breakdown.final_denial_probability == 5
        assert result.overall_assessment.rfe_probability_pct == 8

    def test_clamped_high(self):
        """Test the final probability never exceeds 95."""
        result = normalize_pass2(pass2_payload(80, [{"factor": "Fraud indicators", "delta_pct": 40}]), FULL_INVENTORY)
        assert result.probability_breakdown.final_denial_probability == 95
        assert result.overall_assessment.risk_level == "VERY_HIGH"
        assert result.filing_recommendation.recommendation == "CONSIDER_ALTERNATIVE"

    def test_no_recommenders_adds_adjustment_once(self):
        """Test missing recommenders add +15 unless already present."""
        inventory = FULL_INVENTORY.model_copy(update={"recommender_count": 0})

        added = normalize_pass2(pass2_payload(20), inventory)
        factors = [a.factor for a in added.probability_breakdown.adjustments]
        assert factors == [NO_RECOMMENDERS_FACTOR]
        assert added.probability_breakdown.final_denial_probability == 35

        existing = normalize_pass2(
            pass2_payload(20, [{"factor": NO_RECOMMENDERS_FACTOR, "delta_pct": 15}]), inventory
        )
        assert len(existing.probability_breakdown.adjustments) == 1
        assert existing.probability_breakdown.final_denial_probability == 35

    def test_floors_applied_as_adjustment(self):
        """Test inventory floors raise the final probability with a visible adjustment."""
        inventory = FULL_INVENTORY.model_copy(update={"document_count": 0})
        result = normalize_pass2(pass2_payload(30), inventory)

        breakdown = result.probability_breakdown
        assert breakdown.final_denial_probability == 85
        assert breakdown.adjustments[-1].factor == FLOOR_FACTOR
        assert breakdown.base_denial_rate + sum(a.delta_pct for a in breakdown.adjustments) == 85

    @pytest.mark.parametrize(
        "update,expected",
        [
            ({}, 0),
            ({"document_count": 0}, 85),
            ({"has_extraction": False, "criteria_with_evidence": None}, 90),
            ({"criteria_with_evidence": 2}, 70),
            ({"document_count": 0, "has_extraction": False}, 90),
        ],
    )
    def test_evidence_floor(self, update, expected):
        assert evidence_floor(FULL_INVENTORY.model_copy(update=update)) == expected


class TestEnforcePass1Rules:
    """Tests for pass 1 inventory rules."""

    def test_missing_items_become_high_flags_first(self):
        inventory = EvidenceInventory(document_count=0, recommender_count=2, has_profile=True, has_extraction=True)
        result = enforce_pass1_rules(pass1_payload(), inventory)

        assert result.red_flags[0].level == "HIGH"
        assert result.red_flags[0].description == "No documents uploaded"
        assert result.red_flags[-1].description == "Short career"
        assert result.strengths == ["Publications at top venues"]

    def test_existing_flag_not_duplicated(self):
        inventory = EvidenceInventory(document_count=0, recommender_count=2, has_profile=True, has_extraction=True)
        pass1 = pass1_payload(red_flags=[{"level": "MEDIUM", "description": "no documents uploaded"}])

        result = enforce_pass1_rules(pass1, inventory)
        assert [f.description for f in result.red_flags] == ["no documents uploaded"]

    def test_empty_inventory_strips_strengths(self):
        result = enforce_pass1_rules(pass1_payload(), EvidenceInventory())

        assert result.strengths == []
        assert [f.level for f in result.red_flags[:3]] == ["HIGH", "HIGH", "HIGH"]


class TestRiskProbabilityStage:
    """Tests for the full two-pass execution."""

    @pytest.mark.asyncio
    async def test_execute_stores_combined_normalized_output(self, store, case_id, completion, prompts, stage_llm):
        """Test both passes are merged into one stored, normalized result."""
        store.add_document(case_id, "cv.pdf", content="CV")
        await store.append_stage_output(case_id, STRENGTH_EVALUATION, {"stage": "strength"})
        await store.append_stage_output(case_id, GAP_ANALYSIS, {"stage": "gap"})

        gate = PipelineStageGate(store, completion, prompts)
        result = await gate.run_stage(case_id, RISK_PROBABILITY)

        stored = await store.get_latest_stage_output(case_id, RISK_PROBABILITY)
        assert stored == result.data
        assert "kazarian_analysis" in stored
        assert "probability_breakdown" in stored
        # No extraction on file: floor of 90 applies after the recommender adjustment
        breakdown = stored["probability_breakdown"]
        assert breakdown["final_denial_probability"] == 90
        assert stored["overall_assessment"]["denial_probability_pct"] == 90
        assert stored["overall_assessment"]["rfe_probability_pct"] == 90
        descriptions = [f["description"] for f in stored["red_flags"]]
        assert "No recommenders on file" in descriptions
        assert "No EB-1A analysis/extraction exists" in descriptions

        pass2_prompt = stage_llm.generate_content.call_args.kwargs["contents"]
        assert "=== QUALITATIVE ANALYSIS ===" in pass2_prompt
        assert '"description": "No recommenders on file"' in pass2_prompt
