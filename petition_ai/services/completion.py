"""Schema-bound language-model completion."""

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from petition_ai.core.exceptions import SchemaValidationFailure
from petition_ai.services.prompts.prompt_config import PromptConfig
from petition_ai.utils.json_parser import parse_json_safely
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class StructuredCompletionService:
    """Runs one completion and validates the reply against a pydantic schema.

    ``llm_client`` is anything with the ``generate_content`` coroutine of
    ``UnifiedLLMClient``.
    """

    def __init__(self, llm_client, provider: Optional[str] = None):
        self.llm_client = llm_client
        self.provider = provider

    async def complete(
        self,
        system_instructions: str,
        prompt: str,
        output_schema: Type[SchemaT],
        config: Optional[PromptConfig] = None,
    ) -> SchemaT:
        """Return the validated reply.

        Raises:
            SchemaValidationFailure: The reply is not JSON or does not match
                ``output_schema``
            APIClientError: The provider call failed
        """
        generation_config: Dict[str, Any] = {"response_mime_type": "application/json"}
        if config is not None:
            generation_config.update(config.generation_config(self.provider))

        raw = await self.llm_client.generate_content(
            contents=prompt,
            system_instruction=system_instructions,
            generation_config=generation_config,
        )
        return self.validate(raw, output_schema)

    @staticmethod
    def validate(raw: str, output_schema: Type[SchemaT]) -> SchemaT:
        schema_name = output_schema.__name__
        parsed = parse_json_safely(raw or "")
        if not isinstance(parsed, dict):
            LOGGER.warning(
                f"Completion for {schema_name} did not return a JSON object",
                extra={"raw_excerpt": (raw or "")[:200]},
            )
            raise SchemaValidationFailure(
                f"Output for {schema_name} is not a JSON object",
                schema_name=schema_name,
                raw_output=raw,
            )

        try:
            return output_schema.model_validate(parsed)
        except PydanticValidationError as e:
            LOGGER.warning(
                f"Completion output failed {schema_name} validation",
                extra={"errors": e.error_count()},
            )
            raise SchemaValidationFailure(
                f"Output does not match {schema_name}: {e}",
                schema_name=schema_name,
                raw_output=raw,
                original_error=e,
            ) from e
