"""Two-pass risk probability stage.

Pass 1 is qualitative only. Pass 2 turns pass 1 and the evidence inventory
into numbers, which are then normalised here so the stored result always
satisfies: whole-integer percentages, final probability = base + adjustments
clamped to [5, 95], ``denial_probability_pct`` equal to the final
probability, and risk level / filing recommendation / RFE probability
derived from it by fixed thresholds.
"""

from typing import List

from petition_ai.core.base_stage import BaseStage, StageResult, StageStatus
from petition_ai.schemas.stages import Adjustment, EvidenceInventory, RedFlag, RiskPass1, RiskPass2
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.pipeline.context_builder import RISK_DEPENDENCIES, RISK_PROBABILITY, ContextBuilder, to_json
from petition_ai.services.prompts.prompt_config import PromptConfigService
from petition_ai.services.prompts.system_prompts import RISK_PASS1_PROMPT, RISK_PASS2_PROMPT
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

PASS1_SLUG = "denial-probability"
PASS2_SLUG = "denial-probability-pass2"

MIN_PROBABILITY = 5
MAX_PROBABILITY = 95
MAX_RFE_PROBABILITY = 90
RFE_MULTIPLIER = 1.5

NO_DOCUMENTS_FLOOR = 85
NO_EXTRACTION_FLOOR = 90
FEW_CRITERIA_FLOOR = 70
FEW_CRITERIA_THRESHOLD = 3
NO_RECOMMENDERS_DELTA = 15
NO_RECOMMENDERS_FACTOR = "No recommenders on file"
FLOOR_FACTOR = "Minimum for missing evidence"

_FLAG_ORDER = {"HIGH": 0, "MEDIUM": 1, "LOW": 2}


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def risk_level_for(probability: int) -> str:
    if probability < 20:
        return "LOW"
    if probability < 40:
        return "MEDIUM"
    if probability <= 60:
        return "HIGH"
    return "VERY_HIGH"


def filing_recommendation_for(probability: int) -> str:
    if probability < 15:
        return "FILE_NOW"
    if probability < 30:
        return "FILE_WITH_CAUTION"
    if probability < 50:
        return "STRENGTHEN_FIRST"
    if probability <= 70:
        return "MAJOR_GAPS"
    return "CONSIDER_ALTERNATIVE"


def rfe_probability_for(probability: int) -> int:
    return min(MAX_RFE_PROBABILITY, max(MIN_PROBABILITY, round(RFE_MULTIPLIER * probability)))


def evidence_floor(inventory: EvidenceInventory) -> int:
    """Lowest final probability the inventory allows, 0 when unconstrained."""
    floors = [0]
    if inventory.document_count == 0:
        floors.append(NO_DOCUMENTS_FLOOR)
    if not inventory.has_extraction:
        floors.append(NO_EXTRACTION_FLOOR)
    elif inventory.criteria_with_evidence is not None and inventory.criteria_with_evidence < FEW_CRITERIA_THRESHOLD:
        floors.append(FEW_CRITERIA_FLOOR)
    return max(floors)


def enforce_pass1_rules(pass1: RiskPass1, inventory: EvidenceInventory) -> RiskPass1:
    """Surface inventory gaps as HIGH red flags and drop unevidenced strengths."""
    flags: List[RedFlag] = list(pass1.red_flags)
    descriptions = {f.description.lower() for f in flags}
    for missing in inventory.missing_items:
        if missing.lower() not in descriptions:
            flags.insert(0, RedFlag(level="HIGH", description=missing))

    flags.sort(key=lambda f: _FLAG_ORDER.get(f.level, len(_FLAG_ORDER)))
    strengths = [] if inventory.is_empty else list(pass1.strengths)
    return pass1.model_copy(update={"red_flags": flags, "strengths": strengths})


def normalize_pass2(pass2: RiskPass2, inventory: EvidenceInventory) -> RiskPass2:
    """Recompute every derived number of a pass 2 output."""
    breakdown = pass2.probability_breakdown
    base = clamp(round(breakdown.base_denial_rate), 0, 100)
    adjustments = [Adjustment(factor=a.factor, delta_pct=round(a.delta_pct)) for a in breakdown.adjustments]

    if inventory.recommender_count == 0 and not any(a.factor == NO_RECOMMENDERS_FACTOR for a in adjustments):
        adjustments.append(Adjustment(factor=NO_RECOMMENDERS_FACTOR, delta_pct=NO_RECOMMENDERS_DELTA))

    raw = base + sum(a.delta_pct for a in adjustments)
    floor = evidence_floor(inventory)
    if raw < floor:
        adjustments.append(Adjustment(factor=FLOOR_FACTOR, delta_pct=floor - raw))
        raw = floor

    final = clamp(raw, MIN_PROBABILITY, MAX_PROBABILITY)

    overall = pass2.overall_assessment.model_copy(update={
        "denial_probability_pct": final,
        "rfe_probability_pct": rfe_probability_for(final),
        "risk_level": risk_level_for(final),
    })
    filing = pass2.filing_recommendation.model_copy(update={
        "recommendation": filing_recommendation_for(final),
    })
    return pass2.model_copy(update={
        "probability_breakdown": breakdown.model_copy(update={
            "base_denial_rate": base,
            "adjustments": adjustments,
            "final_denial_probability": final,
        }),
        "overall_assessment": overall,
        "filing_recommendation": filing,
    })


class RiskProbabilityStage(BaseStage):
    """Requires strength evaluation and gap analysis; runs pass 1 then pass 2."""

    def __init__(
        self,
        store: CaseStore,
        completion: StructuredCompletionService,
        prompts: PromptConfigService,
        context_builder: ContextBuilder,
    ):
        self.store = store
        self.completion = completion
        self.prompts = prompts
        self.context_builder = context_builder

    @property
    def name(self) -> str:
        return RISK_PROBABILITY

    @property
    def dependencies(self) -> list[str]:
        return list(RISK_DEPENDENCIES)

    async def is_complete(self, case_id: str) -> bool:
        return await self.store.get_latest_stage_output(case_id, self.name) is not None

    async def run_pass1(self, context: str, inventory: EvidenceInventory) -> RiskPass1:
        config = await self.prompts.resolve(PASS1_SLUG, RISK_PASS1_PROMPT)
        prompt = (
            "Perform a qualitative denial probability assessment on the following case data, "
            f"strength evaluation, and gap analysis:\n\n{context}"
        )
        pass1 = await self.completion.complete(config.content, prompt, RiskPass1, config=config)
        return enforce_pass1_rules(pass1, inventory)

    async def run_pass2(self, pass1: RiskPass1, inventory: EvidenceInventory) -> RiskPass2:
        config = await self.prompts.resolve(PASS2_SLUG, RISK_PASS2_PROMPT)
        prompt = (
            "Compute probability breakdown, overall assessment, recommendations, and filing "
            "recommendation based on this completed qualitative analysis and evidence inventory.\n\n"
            f"{inventory.to_text()}\n\n=== QUALITATIVE ANALYSIS ===\n{to_json(pass1.model_dump(mode='json'))}"
        )
        pass2 = await self.completion.complete(config.content, prompt, RiskPass2, config=config)
        return normalize_pass2(pass2, inventory)

    async def execute(self, case_id: str, *args, **kwargs) -> StageResult:
        """Run both passes and store the combined output.

        Raises:
            PredecessorMissing: Raised before any completion call
            SchemaValidationFailure: Either pass returned a non-conforming output
        """
        context, inventory = await self.context_builder.build_risk_context(case_id)

        pass1 = await self.run_pass1(context, inventory)
        pass2 = await self.run_pass2(pass1, inventory)

        data = {**pass1.model_dump(mode="json"), **pass2.model_dump(mode="json")}
        await self.store.append_stage_output(case_id, self.name, data)

        LOGGER.info(
            f"Risk probability for case {case_id}: {pass2.probability_breakdown.final_denial_probability}%",
            extra={
                "case_id": case_id,
                "risk_level": pass2.overall_assessment.risk_level,
                "filing_recommendation": pass2.filing_recommendation.recommendation,
            },
        )
        return StageResult(status=StageStatus.COMPLETED, data=data)
