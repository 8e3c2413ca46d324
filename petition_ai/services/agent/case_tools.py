"""Side-effecting tools available to the case agent."""

from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from petition_ai.core.exceptions import AppError, ValidationError
from petition_ai.schemas.agent import ToolCall, ToolResult
from petition_ai.services.analysis.version_store import AnalysisVersionService
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.deep_merge import deep_merge
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

MIN_THRESHOLD = 1
MAX_THRESHOLD = 10


class CaseTools:
    """Tool implementations bound to one case.

    Tool failures are returned as unsuccessful ``ToolResult`` objects so the
    model can see and react to them.
    """

    def __init__(self, case_id: str, store: CaseStore, versions: AnalysisVersionService):
        self.case_id = case_id
        self.store = store
        self.versions = versions
        self._handlers = {
            "update_profile": self.update_profile,
            "get_latest_analysis": self.get_latest_analysis,
            "update_analysis": self.update_analysis,
            "update_threshold": self.update_threshold,
        }

    async def dispatch(self, call: ToolCall) -> ToolResult:
        handler = self._handlers[call.name]
        LOGGER.info(
            f"Agent tool {call.name} called for case {self.case_id}",
            extra={"case_id": self.case_id, "tool": call.name},
        )
        try:
            result = await handler(**call.arguments)
        except (AppError, PydanticValidationError, TypeError) as e:
            LOGGER.warning(f"Agent tool {call.name} failed: {e}", extra={"case_id": self.case_id})
            return ToolResult(name=call.name, success=False, error=str(e))
        return ToolResult(name=call.name, success=True, result=result)

    async def update_profile(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        current = await self.store.get_profile(self.case_id)
        merged = deep_merge(current, updates)
        await self.store.put_profile(self.case_id, merged)
        return {"success": True, "profile_keys": sorted(merged)}

    async def get_latest_analysis(self) -> Dict[str, Any]:
        latest = await self.versions.get_latest(self.case_id)
        if latest is None:
            return {"exists": False, "version": 0, "criteria": None}
        return {
            "exists": True,
            "version": latest.version,
            "criteria": [c.model_dump() for c in latest.criteria],
            "strong_count": latest.strong_count,
            "weak_count": latest.weak_count,
        }

    async def update_analysis(self, updates: list) -> Dict[str, Any]:
        version = await self.versions.apply_updates(self.case_id, updates)
        return {
            "success": True,
            "version": version.version,
            "updated": [u["criterion_id"] if isinstance(u, dict) else u.criterion_id for u in updates],
            "strong_count": version.strong_count,
            "weak_count": version.weak_count,
        }

    async def update_threshold(self, threshold: int) -> Dict[str, Any]:
        if not isinstance(threshold, int) or isinstance(threshold, bool) or not MIN_THRESHOLD <= threshold <= MAX_THRESHOLD:
            raise ValidationError(f"Threshold must be an integer between {MIN_THRESHOLD} and {MAX_THRESHOLD}, got {threshold!r}")
        await self.store.set_criteria_threshold(self.case_id, threshold)
        return {"success": True, "new_threshold": threshold}
