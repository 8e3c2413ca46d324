"""Unified LLM client.

Selects a provider client from configuration and optionally falls back to
Gemini when the primary provider fails.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

from petition_ai.core.config import settings
from petition_ai.core.exceptions import APIClientError, ConfigurationError
from petition_ai.core.llm_client import Contents, GeminiClient, OpenRouterClient
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    GEMINI = "gemini"
    OPENROUTER = "openrouter"


class UnifiedLLMClient:
    """Provider-agnostic ``generate_content`` with optional Gemini fallback."""

    def __init__(
        self,
        provider: Union[str, LLMProvider],
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout: int = 60,
        max_retries: int = 3,
        fallback_to_gemini: bool = False,
        gemini_api_key: Optional[str] = None,
        gemini_model: Optional[str] = None,
    ):
        try:
            self.provider = LLMProvider(provider)
        except ValueError as e:
            raise ConfigurationError(f"Unsupported provider: {provider}", e)
        self.model = model
        self.fallback_client = None

        if self.provider == LLMProvider.GEMINI:
            self.client = GeminiClient(
                api_key=api_key, model=model, timeout=timeout, max_retries=max_retries
            )
        else:
            self.client = OpenRouterClient(
                api_key=api_key,
                model=model,
                base_url=base_url or "https://openrouter.ai/api/v1/chat/completions",
                timeout=timeout,
                max_retries=max_retries,
            )
            if fallback_to_gemini:
                if not gemini_api_key:
                    raise ConfigurationError("gemini_api_key required when fallback_to_gemini=True")
                self.fallback_client = GeminiClient(
                    api_key=gemini_api_key,
                    model=gemini_model or "gemini-2.0-flash",
                    timeout=timeout,
                    max_retries=max_retries,
                )

        LOGGER.info(
            f"Initialized unified LLM with {self.provider.value} provider (model: {model})",
            extra={"fallback": self.fallback_client is not None},
        )

    async def generate_content(
        self,
        contents: Contents,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content using the configured provider.

        Raises:
            APIClientError: If generation fails (on both providers when a
                fallback is configured)
        """
        try:
            return await self.client.generate_content(
                contents=contents,
                system_instruction=system_instruction,
                generation_config=generation_config,
            )
        except APIClientError as e:
            if not self.fallback_client:
                raise
            LOGGER.warning(
                f"Primary provider ({self.provider.value}) failed, attempting Gemini fallback: {e}"
            )
            try:
                return await self.fallback_client.generate_content(
                    contents=contents,
                    system_instruction=system_instruction,
                    generation_config=generation_config,
                )
            except APIClientError as fallback_error:
                LOGGER.error(f"Fallback to Gemini also failed: {fallback_error}")
                raise APIClientError(
                    f"Both primary ({self.provider.value}) and fallback (Gemini) failed",
                    fallback_error,
                ) from fallback_error


def create_llm_client_from_settings() -> UnifiedLLMClient:
    """Build a client for the provider named in ``settings.llm``."""
    llm = settings.llm
    if llm.provider == LLMProvider.GEMINI.value:
        api_key, model, base_url = llm.gemini_api_key, llm.gemini_model, None
    else:
        api_key, model, base_url = llm.openrouter_api_key, llm.openrouter_model, llm.openrouter_api_url

    return UnifiedLLMClient(
        provider=llm.provider,
        api_key=api_key,
        model=model,
        base_url=base_url,
        timeout=llm.timeout,
        max_retries=llm.max_retries,
        fallback_to_gemini=llm.enable_fallback,
        gemini_api_key=llm.gemini_api_key,
        gemini_model=llm.gemini_model,
    )
