"""One fan-out unit: extract evidence for a single criterion."""

import json
from typing import Any, Dict, Optional

from petition_ai.core.exceptions import UnknownCriterionError
from petition_ai.schemas.criteria import ANALYSIS_SLUGS, CRITERIA_METADATA
from petition_ai.schemas.extraction import CRITERION_SCHEMAS, UnitOutcome
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.prompts.prompt_config import PromptConfigService, substitute_vars
from petition_ai.services.prompts.system_prompts import CRITERION_EXTRACTION_PROMPT
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


def build_survey_context(survey: Optional[Dict[str, Any]]) -> str:
    """Survey answers appended to every unit prompt, or an empty string."""
    if not survey:
        return ""
    return "\n\nADDITIONAL CONTEXT FROM USER SURVEY:\n" + json.dumps(survey, indent=2, default=str)


class CriterionExtractor:
    """Runs the schema-bound completion for one criterion.

    Units share nothing but the read-only prompt configuration, so any
    number of them can run concurrently.
    """

    def __init__(self, completion: StructuredCompletionService, prompts: PromptConfigService):
        self.completion = completion
        self.prompts = prompts

    async def extract(self, criterion_id: str, text: str, survey_context: str = "") -> Dict[str, Any]:
        """Return the unit's evidence arrays and criteria summary as a dict.

        Raises:
            UnknownCriterionError: ``criterion_id`` is not C1..C10
            SchemaValidationFailure: The reply did not match the unit schema
            APIClientError: The completion call failed
        """
        schema = CRITERION_SCHEMAS.get(criterion_id)
        if schema is None:
            raise UnknownCriterionError(f"Unknown criterion: {criterion_id}")

        meta = CRITERIA_METADATA[criterion_id]
        config = await self.prompts.resolve(ANALYSIS_SLUGS[criterion_id], CRITERION_EXTRACTION_PROMPT)
        system = substitute_vars(
            config.content,
            {
                "criterion_id": criterion_id,
                "criterion_name": meta.name,
                "criterion_description": meta.description,
            },
        )
        prompt = f"Extract and evaluate this resume for criterion {criterion_id}:\n\n{text}{survey_context}"

        result = await self.completion.complete(system, prompt, schema, config=config)
        data = result.model_dump(mode="json")
        # The unit owns its summary regardless of what id the model echoed
        data["criteria_summary"]["criterion_id"] = criterion_id
        return data

    async def run_unit(self, criterion_id: str, text: str, survey_context: str = "") -> UnitOutcome:
        """``extract`` wrapped into a tagged outcome; failures never propagate."""
        try:
            data = await self.extract(criterion_id, text, survey_context)
        except Exception as e:
            LOGGER.warning(
                f"Extraction unit {criterion_id} failed: {e}",
                extra={"criterion_id": criterion_id, "error_type": type(e).__name__},
            )
            return UnitOutcome(criterion_id=criterion_id, success=False, error=str(e))

        LOGGER.debug(f"Extraction unit {criterion_id} completed")
        return UnitOutcome(criterion_id=criterion_id, success=True, data=data)
