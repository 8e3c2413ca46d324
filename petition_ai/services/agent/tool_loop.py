"""Bounded step loop for the tool-using case agent.

State is the conversation so far. Each step asks the model for an
``AgentStep``; its tool calls are executed in order and their results are
appended to the conversation. The loop ends when a step requests no tools
or the step budget is spent.
"""

import json
from typing import List, Optional

from petition_ai.core.config import settings
from petition_ai.schemas.agent import AgentMessage, AgentRunResult, AgentStep, ToolResult
from petition_ai.services.agent.case_tools import CaseTools
from petition_ai.services.analysis.version_store import AnalysisVersionService
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.prompts.prompt_config import PromptConfigService, substitute_vars
from petition_ai.services.prompts.system_prompts import CASE_AGENT_PROMPT
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

CASE_AGENT_SLUG = "case-agent"


def render_transcript(messages: List[AgentMessage]) -> str:
    return "\n\n".join(f"[{m.role}]\n{m.content}" for m in messages)


class AgentToolLoop:

    def __init__(
        self,
        store: CaseStore,
        completion: StructuredCompletionService,
        prompts: PromptConfigService,
        versions: Optional[AnalysisVersionService] = None,
        max_steps: Optional[int] = None,
    ):
        self.store = store
        self.completion = completion
        self.prompts = prompts
        self.versions = versions or AnalysisVersionService(store)
        self.max_steps = max_steps or settings.agent_max_steps

    async def run(
        self,
        case_id: str,
        user_message: str,
        history: Optional[List[AgentMessage]] = None,
    ) -> AgentRunResult:
        tools = CaseTools(case_id, self.store, self.versions)
        messages = list(history or [])
        messages.append(AgentMessage(role="user", content=user_message))
        tool_results: List[ToolResult] = []
        final_message = ""

        for step in range(1, self.max_steps + 1):
            config = await self.prompts.resolve(CASE_AGENT_SLUG, CASE_AGENT_PROMPT)
            # Tools may have changed the profile since the last step
            profile = await self.store.get_profile(case_id)
            system = substitute_vars(config.content, {"profile": json.dumps(profile, indent=2, default=str)})
            agent_step = await self.completion.complete(
                system, render_transcript(messages), AgentStep, config=config
            )

            if agent_step.message:
                final_message = agent_step.message
                messages.append(AgentMessage(role="assistant", content=agent_step.message))

            if not agent_step.tool_calls:
                return AgentRunResult(
                    final_message=final_message,
                    steps=step,
                    tool_results=tool_results,
                    messages=messages,
                )

            for call in agent_step.tool_calls:
                result = await tools.dispatch(call)
                tool_results.append(result)
                messages.append(AgentMessage(role="tool", content=json.dumps(result.model_dump(), default=str)))

        LOGGER.warning(
            f"Case agent for {case_id} used all {self.max_steps} steps",
            extra={"case_id": case_id, "tool_calls": len(tool_results)},
        )
        return AgentRunResult(
            final_message=final_message,
            steps=self.max_steps,
            tool_results=tool_results,
            messages=messages,
            exhausted=True,
        )

