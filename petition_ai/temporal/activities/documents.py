"""Temporal activities run when a document is added to a case."""

from temporalio import activity
from temporalio.exceptions import ApplicationError

from petition_ai.core.exceptions import ValidationError
from petition_ai.services.analysis.incremental import IncrementalAnalysisService
from petition_ai.services.verification.document_verifier import DocumentVerificationService
from petition_ai.temporal.core.activity_registry import ActivityRegistry
from petition_ai.temporal.core.service_factory import open_case_services
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


@ActivityRegistry.register("evidence", "verify_document_activity")
@activity.defn(name="verify_document_activity")
async def verify_document_activity(case_id: str, document_id: str) -> dict:
    """Verify one stored document against C1..C5."""
    try:
        async with open_case_services() as services:
            service = DocumentVerificationService(
                services.store, services.completion, services.prompts
            )
            results = await service.execute(case_id, document_id)
            return results.model_dump(mode="json")
    except ValidationError as e:
        raise ApplicationError(str(e), type="ValidationError", non_retryable=True) from e
    except Exception as e:
        LOGGER.error(f"Verification failed for document {document_id}: {e}", exc_info=True)
        raise


@ActivityRegistry.register("evidence", "incremental_analysis_activity")
@activity.defn(name="incremental_analysis_activity")
async def incremental_analysis_activity(case_id: str, document_id: str) -> dict:
    """Re-evaluate the criteria a newly added document bears on."""
    try:
        async with open_case_services() as services:
            document = await services.store.get_document(case_id, document_id)
            if document is None or not document.content:
                LOGGER.warning(
                    f"No text for document {document_id}; skipping incremental analysis",
                    extra={"case_id": case_id, "document_id": document_id},
                )
                return {"case_id": case_id, "updated": False, "version": None}

            service = IncrementalAnalysisService(
                services.store, services.completion, services.prompts
            )
            version = await service.run(case_id, document.content)
            return {
                "case_id": case_id,
                "updated": version is not None,
                "version": version.version if version else None,
            }
    except Exception as e:
        LOGGER.error(f"Incremental analysis failed for case {case_id}: {e}", exc_info=True)
        raise
