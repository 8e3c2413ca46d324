"""Dependency-gated execution of the analysis cascade."""

from typing import Dict, Optional, Sequence

from petition_ai.core.base_stage import BaseStage, StageResult, StageStatus
from petition_ai.core.exceptions import PredecessorMissing, ValidationError
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.pipeline.context_builder import CASCADE_ORDER, RISK_PROBABILITY, ContextBuilder
from petition_ai.services.pipeline.risk_probability import RiskProbabilityStage
from petition_ai.services.pipeline.stages import STAGE_DEFINITIONS, LLMStage
from petition_ai.services.prompts.prompt_config import PromptConfigService
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

ALL_STAGES = CASCADE_ORDER + (RISK_PROBABILITY,)


class PipelineStageGate:
    """Runs cascade stages for a case.

    A stage whose predecessor output is missing raises ``PredecessorMissing``
    without calling the model. Stages of one case run one after another;
    different cases share nothing.
    """

    def __init__(
        self,
        store: CaseStore,
        completion: StructuredCompletionService,
        prompts: PromptConfigService,
    ):
        self.store = store
        context_builder = ContextBuilder(store)
        self.stages: Dict[str, BaseStage] = {
            name: LLMStage(STAGE_DEFINITIONS[name], store, completion, prompts, context_builder)
            for name in CASCADE_ORDER
        }
        self.stages[RISK_PROBABILITY] = RiskProbabilityStage(store, completion, prompts, context_builder)

    def get_stage(self, stage_name: str) -> BaseStage:
        stage = self.stages.get(stage_name)
        if stage is None:
            raise ValidationError(f"Unknown stage: {stage_name}")
        return stage

    async def run_stage(self, case_id: str, stage_name: str) -> StageResult:
        """Run one stage.

        Raises:
            PredecessorMissing: The required upstream output is not stored
            ValidationError: ``stage_name`` is not a cascade stage
        """
        stage = self.get_stage(stage_name)
        try:
            return await stage.execute(case_id)
        except PredecessorMissing as e:
            LOGGER.warning(
                f"Stage {stage_name} blocked for case {case_id}: {e.hint}",
                extra={"case_id": case_id, "stage": stage_name, "required_stage": e.required_stage},
            )
            raise

    async def run_cascade(
        self,
        case_id: str,
        stages: Optional[Sequence[str]] = None,
    ) -> Dict[str, StageResult]:
        """Run ``stages`` (default: all five) in order, stopping at the first error."""
        results: Dict[str, StageResult] = {}
        for stage_name in stages or ALL_STAGES:
            results[stage_name] = await self.run_stage(case_id, stage_name)
        return results

    async def get_status(self, case_id: str) -> Dict[str, StageStatus]:
        """COMPLETED, BLOCKED (a dependency has no output) or NOT_STARTED per stage."""
        complete: Dict[str, bool] = {}
        for name, stage in self.stages.items():
            complete[name] = await stage.is_complete(case_id)

        status: Dict[str, StageStatus] = {}
        for name, stage in self.stages.items():
            if complete[name]:
                status[name] = StageStatus.COMPLETED
            elif any(not complete[dep] for dep in stage.dependencies):
                status[name] = StageStatus.BLOCKED
            else:
                status[name] = StageStatus.NOT_STARTED
        return status

