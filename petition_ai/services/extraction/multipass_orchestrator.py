"""Multipass extraction: ten concurrent criterion units, then fan-in."""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from petition_ai.core.config import settings
from petition_ai.core.exceptions import PartialExtractionFailure, ValidationError
from petition_ai.schemas.criteria import ALL_CRITERIA
from petition_ai.schemas.extraction import ExtractionDocument, UnitOutcome
from petition_ai.services.base_service import BaseService
from petition_ai.services.extraction.assembler import assemble_extraction
from petition_ai.services.extraction.criterion_extractor import CriterionExtractor, build_survey_context
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)

CriterionCallback = Callable[[str, ExtractionDocument], Union[None, Awaitable[None]]]


@dataclass
class ExtractionRunResult:
    extraction: ExtractionDocument
    outcomes: List[UnitOutcome] = field(default_factory=list)
    failure: Optional[PartialExtractionFailure] = None

    @property
    def failed_criteria(self) -> List[str]:
        return self.failure.failed_criteria if self.failure else []


class MultipassExtractionService(BaseService):
    """Fans extraction out over C1..C10 and assembles whatever succeeded.

    Unit failures are recorded on the result as ``PartialExtractionFailure``
    and never raised. With ``on_criterion_complete`` the partial assembly
    is reported after every unit; the last report equals the final result.
    """

    def __init__(
        self,
        store: CaseStore,
        extractor: CriterionExtractor,
        concurrency: Optional[int] = None,
    ):
        super().__init__(store)
        self.extractor = extractor
        self.concurrency = concurrency or settings.extraction_concurrency

    def validate(self, case_id: str, text: str, *args, **kwargs):
        if not text or not text.strip():
            raise ValidationError("Case text is empty; nothing to extract")

    async def run(
        self,
        case_id: str,
        text: str,
        survey: Optional[Dict[str, Any]] = None,
        on_criterion_complete: Optional[CriterionCallback] = None,
        persist: bool = True,
    ) -> ExtractionRunResult:
        survey_context = build_survey_context(survey)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(criterion_id: str) -> UnitOutcome:
            async with semaphore:
                return await self.extractor.run_unit(criterion_id, text, survey_context)

        LOGGER.info(
            f"Starting multipass extraction for case {case_id}",
            extra={"case_id": case_id, "units": len(ALL_CRITERIA), "concurrency": self.concurrency},
        )

        completed: List[UnitOutcome] = []
        tasks = [asyncio.create_task(bounded(c)) for c in ALL_CRITERIA]
        for next_done in asyncio.as_completed(tasks):
            outcome = await next_done
            completed.append(outcome)
            if on_criterion_complete is not None:
                await self._notify(on_criterion_complete, outcome.criterion_id, completed)

        extraction = assemble_extraction(completed)
        failed = sorted(
            (o.criterion_id for o in completed if not o.success),
            key=ALL_CRITERIA.index,
        )
        failure = PartialExtractionFailure(failed) if failed else None
        if failure:
            LOGGER.warning(
                f"Multipass extraction for case {case_id} finished with failures",
                extra={"case_id": case_id, "failed_criteria": failed},
            )

        if persist:
            await self.store.put_extraction(case_id, extraction, failed)

        LOGGER.info(
            f"Multipass extraction completed for case {case_id}",
            extra={"case_id": case_id, "succeeded": len(completed) - len(failed), "failed": len(failed)},
        )
        return ExtractionRunResult(extraction=extraction, outcomes=completed, failure=failure)

    async def _notify(self, callback: CriterionCallback, criterion_id: str, completed: List[UnitOutcome]):
        partial = assemble_extraction(list(completed))
        try:
            result = callback(criterion_id, partial)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # Callback errors never fail the run
            LOGGER.warning(f"Progress callback failed for {criterion_id}: {e}", exc_info=True)
