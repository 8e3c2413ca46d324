"""Temporal activities for multipass extraction and analysis seeding."""

from typing import Any, Dict, Optional

from temporalio import activity
from temporalio.exceptions import ApplicationError

from petition_ai.core.exceptions import ValidationError
from petition_ai.schemas.extraction import ExtractionDocument
from petition_ai.services.analysis.version_store import AnalysisVersionService
from petition_ai.services.extraction.criterion_extractor import CriterionExtractor
from petition_ai.services.extraction.multipass_orchestrator import MultipassExtractionService
from petition_ai.services.extraction.survey_merge import merge_extraction_with_survey
from petition_ai.services.store.base import count_criteria_with_evidence
from petition_ai.temporal.core.activity_registry import ActivityRegistry
from petition_ai.temporal.core.service_factory import open_case_services
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


@ActivityRegistry.register("case", "multipass_extraction_activity")
@activity.defn(name="multipass_extraction_activity")
async def multipass_extraction_activity(
    case_id: str,
    text: str,
    survey: Optional[Dict[str, Any]] = None,
) -> dict:
    """Extract all ten criteria for a case, overlay the survey, persist."""

    def heartbeat(criterion_id: str, partial: ExtractionDocument) -> None:
        activity.heartbeat(criterion_id)

    try:
        async with open_case_services() as services:
            extractor = CriterionExtractor(services.completion, services.prompts)
            service = MultipassExtractionService(services.store, extractor)
            result = await service.execute(
                case_id, text, survey=survey, on_criterion_complete=heartbeat, persist=False
            )

            extraction = result.extraction
            if survey:
                extraction = merge_extraction_with_survey(extraction, survey)
            await services.store.put_extraction(case_id, extraction, result.failed_criteria)

            return {
                "case_id": case_id,
                "failed_criteria": result.failed_criteria,
                "criteria_with_evidence": count_criteria_with_evidence(extraction),
            }
    except ValidationError as e:
        raise ApplicationError(str(e), type="ValidationError", non_retryable=True) from e
    except Exception as e:
        LOGGER.error(f"Multipass extraction failed for case {case_id}: {e}", exc_info=True)
        raise


@ActivityRegistry.register("case", "seed_analysis_activity")
@activity.defn(name="seed_analysis_activity")
async def seed_analysis_activity(case_id: str) -> dict:
    """Fold the latest extraction's criteria summary into the analysis versions."""
    try:
        async with open_case_services() as services:
            version = await AnalysisVersionService(services.store).seed_from_extraction(case_id)
            if version is None:
                return {"case_id": case_id, "version": 0, "strong_count": 0, "weak_count": 0}
            return {
                "case_id": case_id,
                "version": version.version,
                "strong_count": version.strong_count,
                "weak_count": version.weak_count,
            }
    except Exception as e:
        LOGGER.error(f"Analysis seeding failed for case {case_id}: {e}", exc_info=True)
        raise
