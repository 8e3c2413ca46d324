"""Per-activity service wiring.

Each activity opens its own session and store; the prompt cache and its
SQL source are shared by every activity in the worker process.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from petition_ai.core.database import async_session_maker
from petition_ai.core.unified_llm import create_llm_client_from_settings
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.prompts.prompt_config import PromptConfigService, SqlPromptSource
from petition_ai.services.store.base import CaseStore
from petition_ai.services.store.sql_store import SqlCaseStore

_prompt_service: Optional[PromptConfigService] = None


def get_prompt_service() -> PromptConfigService:
    global _prompt_service
    if _prompt_service is None:
        _prompt_service = PromptConfigService(SqlPromptSource(async_session_maker))
    return _prompt_service


@dataclass
class CaseServices:
    store: CaseStore
    completion: StructuredCompletionService
    prompts: PromptConfigService


@asynccontextmanager
async def open_case_services() -> AsyncIterator[CaseServices]:
    """Yield a store bound to a fresh session plus the shared collaborators."""
    async with async_session_maker() as session:
        yield CaseServices(
            store=SqlCaseStore(session),
            completion=StructuredCompletionService(create_llm_client_from_settings()),
            prompts=get_prompt_service(),
        )
