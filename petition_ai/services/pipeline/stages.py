"""The four context-chained cascade stages."""

from dataclasses import dataclass
from typing import Type

from pydantic import BaseModel

from petition_ai.core.base_stage import BaseStage, StageResult, StageStatus
from petition_ai.schemas.stages import CaseConsolidation, CaseStrategy, GapAnalysis, StrengthEvaluation
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.pipeline.context_builder import (
    CASE_CONSOLIDATION,
    CASE_STRATEGY,
    GAP_ANALYSIS,
    PREDECESSOR,
    STRENGTH_EVALUATION,
    ContextBuilder,
)
from petition_ai.services.prompts.prompt_config import PromptConfigService
from petition_ai.services.prompts import system_prompts
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class StageDefinition:
    name: str
    schema: Type[BaseModel]
    slug: str
    fallback_prompt: str
    instruction: str


STAGE_DEFINITIONS = {
    STRENGTH_EVALUATION: StageDefinition(
        name=STRENGTH_EVALUATION,
        schema=StrengthEvaluation,
        slug="strength-evaluation",
        fallback_prompt=system_prompts.STRENGTH_EVALUATION_PROMPT,
        instruction="Evaluate the following applicant data:",
    ),
    GAP_ANALYSIS: StageDefinition(
        name=GAP_ANALYSIS,
        schema=GapAnalysis,
        slug="gap-analysis",
        fallback_prompt=system_prompts.GAP_ANALYSIS_PROMPT,
        instruction="Perform a comprehensive gap analysis on the following applicant data and strength evaluation:",
    ),
    CASE_STRATEGY: StageDefinition(
        name=CASE_STRATEGY,
        schema=CaseStrategy,
        slug="case-strategy",
        fallback_prompt=system_prompts.CASE_STRATEGY_PROMPT,
        instruction=(
            "Develop a comprehensive case strategy based on the following applicant data, "
            "strength evaluation, and gap analysis:"
        ),
    ),
    CASE_CONSOLIDATION: StageDefinition(
        name=CASE_CONSOLIDATION,
        schema=CaseConsolidation,
        slug="case-consolidation",
        fallback_prompt=system_prompts.CASE_CONSOLIDATION_PROMPT,
        instruction="Consolidate all upstream pipeline outputs into a master case profile based on the following data:",
    ),
}


class LLMStage(BaseStage):
    """One completion over the stage context; the output is appended, never replaced."""

    def __init__(
        self,
        definition: StageDefinition,
        store: CaseStore,
        completion: StructuredCompletionService,
        prompts: PromptConfigService,
        context_builder: ContextBuilder,
    ):
        self.definition = definition
        self.store = store
        self.completion = completion
        self.prompts = prompts
        self.context_builder = context_builder

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def dependencies(self) -> list[str]:
        required = PREDECESSOR.get(self.name)
        return [required] if required else []

    async def is_complete(self, case_id: str) -> bool:
        return await self.store.get_latest_stage_output(case_id, self.name) is not None

    async def execute(self, case_id: str, *args, **kwargs) -> StageResult:
        """Build the context, run the completion and store the output.

        Raises:
            PredecessorMissing: Raised before any completion call
            SchemaValidationFailure: The output did not match the stage schema
        """
        context = await self.context_builder.build_stage_context(case_id, self.name)
        config = await self.prompts.resolve(self.definition.slug, self.definition.fallback_prompt)

        result = await self.completion.complete(
            config.content,
            f"{self.definition.instruction}\n\n{context}",
            self.definition.schema,
            config=config,
        )
        data = result.model_dump(mode="json")
        await self.store.append_stage_output(case_id, self.name, data)

        LOGGER.info(
            f"Stage {self.name} completed for case {case_id}",
            extra={"case_id": case_id, "stage": self.name, "context_chars": len(context)},
        )
        return StageResult(status=StageStatus.COMPLETED, data=data)
