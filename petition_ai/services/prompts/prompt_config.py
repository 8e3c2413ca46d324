"""Prompt configuration lookup with a short-lived per-slug cache."""

import re
import time
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Union

from pydantic import BaseModel

from petition_ai.core.config import settings
from petition_ai.repositories.prompt_repository import PromptRepository
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


class PromptConfig(BaseModel):
    """Prompt wording plus the model settings to run it with."""
    slug: str
    content: str
    provider: str = "gemini"
    model_name: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    active: bool = True
    variables: Optional[Dict[str, Any]] = None

    def generation_config(self, provider: Optional[str] = None) -> Dict[str, Any]:
        """Generation options for the LLM client.

        The model name is only forwarded when the prompt targets the
        provider the client is configured for.
        """
        config: Dict[str, Any] = {}
        if self.temperature is not None:
            config["temperature"] = self.temperature
        if self.max_tokens is not None:
            config["max_output_tokens"] = self.max_tokens
        if self.model_name and self.provider == (provider or settings.llm_provider):
            config["model"] = self.model_name
        return config


class PromptSource(Protocol):
    async def load(self, slug: str) -> Optional[PromptConfig]:
        """Return the stored row for ``slug`` (active or not), or None."""
        ...


class InMemoryPromptSource:
    """Prompt rows held in a dictionary, keyed by slug."""

    def __init__(self, prompts: Optional[Mapping[str, PromptConfig]] = None):
        self.prompts: Dict[str, PromptConfig] = dict(prompts or {})
        self.load_count = 0

    def put(self, prompt: PromptConfig) -> None:
        self.prompts[prompt.slug] = prompt

    async def load(self, slug: str) -> Optional[PromptConfig]:
        self.load_count += 1
        prompt = self.prompts.get(slug)
        return prompt.model_copy() if prompt else None


class SqlPromptSource:
    """Reads ``agent_prompts`` rows; the newest version row overrides base fields."""

    def __init__(self, session_factory: Callable[[], Any]):
        self.session_factory = session_factory

    async def load(self, slug: str) -> Optional[PromptConfig]:
        async with self.session_factory() as session:
            row = await PromptRepository(session).get_by_slug(slug)
            if row is None:
                return None

            latest = max(row.versions, key=lambda v: v.version, default=None)

            def pick(field: str):
                value = getattr(latest, field) if latest is not None else None
                return value if value is not None else getattr(row, field)

            return PromptConfig(
                slug=row.slug,
                content=pick("content"),
                provider=pick("provider"),
                model_name=pick("model_name"),
                temperature=pick("temperature"),
                max_tokens=pick("max_tokens"),
                active=row.active,
                variables=row.variables,
            )


class PromptConfigService:
    """Resolves prompt slugs through a ``PromptSource`` with a TTL cache.

    Cached entries keep inactive rows too, so toggling ``active`` takes
    effect once the entry expires or is invalidated. Missing rows are not
    cached.
    """

    def __init__(
        self,
        source: PromptSource,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.ttl_seconds = settings.prompt_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.clock = clock
        self._cache: Dict[str, tuple] = {}

    async def get(self, slug: str) -> Optional[PromptConfig]:
        """Active configuration for ``slug``, or None when missing or inactive."""
        cached = self._cache.get(slug)
        if cached is not None:
            prompt, fetched_at = cached
            if self.clock() - fetched_at < self.ttl_seconds:
                return prompt if prompt.active else None

        prompt = await self.source.load(slug)
        if prompt is None:
            LOGGER.debug(f"No prompt configuration for slug {slug}")
            return None

        self._cache[slug] = (prompt, self.clock())
        return prompt if prompt.active else None

    async def resolve(self, slug: str, fallback: Union[str, PromptConfig]) -> PromptConfig:
        """Like ``get`` but falls back to a built-in prompt."""
        prompt = await self.get(slug)
        if prompt is not None:
            return prompt
        if isinstance(fallback, PromptConfig):
            return fallback
        LOGGER.debug(f"Using built-in prompt for slug {slug}")
        return PromptConfig(slug=slug, content=fallback)

    def invalidate(self, slug: Optional[str] = None) -> None:
        if slug:
            self._cache.pop(slug, None)
        else:
            self._cache.clear()


def substitute_vars(template: str, variables: Mapping[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left as written."""

    def replace(match: re.Match) -> str:
        key = match.group(1)
        return str(variables[key]) if key in variables else match.group(0)

    return _PLACEHOLDER.sub(replace, template)
