"""Re-analysis after a new document arrives.

A relevance pass picks the criteria the document may strengthen; only those
are re-evaluated, and the results go through the same upgrade-only merge as
every other analysis update. The relevance output is a hint: criteria it
omits are not re-evaluated.
"""

from typing import List, Optional

from petition_ai.core.config import settings
from petition_ai.schemas.analysis import AffectedCriteria, AnalysisVersion, CriterionUpdate, PartialEvaluation
from petition_ai.schemas.criteria import CRITERIA_METADATA, criterion_order, is_known_criterion
from petition_ai.services.analysis.version_store import AnalysisVersionService
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.prompts.prompt_config import PromptConfigService, substitute_vars
from petition_ai.services.prompts.system_prompts import RELEVANCE_PROMPT, REEVALUATION_PROMPT
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

RELEVANCE_SLUG = "incremental-relevance"
REEVALUATION_SLUG = "incremental-reevaluation"


class IncrementalAnalysisService:

    def __init__(
        self,
        store: CaseStore,
        completion: StructuredCompletionService,
        prompts: PromptConfigService,
        versions: Optional[AnalysisVersionService] = None,
        relevance_text_limit: Optional[int] = None,
    ):
        self.store = store
        self.completion = completion
        self.prompts = prompts
        self.versions = versions or AnalysisVersionService(store)
        self.relevance_text_limit = relevance_text_limit or settings.relevance_text_limit

    async def find_affected_criteria(self, new_text: str) -> List[str]:
        """Known criterion ids the relevance pass flagged, in criterion order."""
        criteria_list = "\n".join(f"- {cid}: {meta.name}" for cid, meta in CRITERIA_METADATA.items())
        config = await self.prompts.resolve(RELEVANCE_SLUG, RELEVANCE_PROMPT)
        system = substitute_vars(config.content, {"criteria_list": criteria_list})
        prompt = f"New document content:\n\n{new_text[: self.relevance_text_limit]}"

        result = await self.completion.complete(system, prompt, AffectedCriteria, config=config)
        affected = {cid for cid in result.affected_criterion_ids if is_known_criterion(cid)}
        return sorted(affected, key=criterion_order)

    async def reevaluate(self, case_id: str, criterion_ids: List[str], new_text: str) -> List[CriterionUpdate]:
        details = "\n".join(
            f"- {cid}: {CRITERIA_METADATA[cid].name} - {CRITERIA_METADATA[cid].description}"
            for cid in criterion_ids
        )
        config = await self.prompts.resolve(REEVALUATION_SLUG, REEVALUATION_PROMPT)
        system = substitute_vars(config.content, {"criteria_details": details})

        context = await self.store.get_case_context(case_id)
        evidence = [d.content for d in context.documents if d.content and d.content != new_text]
        evidence.append(new_text)
        prompt = "All available evidence:\n\n" + "\n\n".join(evidence) + "\n\nEvaluate each criterion listed above."

        result = await self.completion.complete(system, prompt, PartialEvaluation, config=config)
        wanted = set(criterion_ids)
        return [
            CriterionUpdate(**r.model_dump())
            for r in result.criteria
            if r.criterion_id in wanted
        ]

    async def run(self, case_id: str, new_text: str) -> Optional[AnalysisVersion]:
        """Return the new version, or None when there was nothing to do."""
        current = await self.store.get_latest_version(case_id)
        if current is None:
            LOGGER.info(f"No analysis for case {case_id}; skipping incremental analysis")
            return None

        affected = await self.find_affected_criteria(new_text)
        if not affected:
            LOGGER.info(f"New document affects no criteria for case {case_id}")
            return None

        updates = await self.reevaluate(case_id, affected, new_text)
        if not updates:
            LOGGER.info(
                f"Re-evaluation returned no results for case {case_id}",
                extra={"affected": affected},
            )
            return None

        LOGGER.info(
            f"Incremental analysis for case {case_id} re-evaluated {len(updates)} criteria",
            extra={"case_id": case_id, "affected": affected},
        )
        return await self.versions.apply_updates(case_id, updates)
