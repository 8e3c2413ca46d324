"""Checks one uploaded document against criteria C1..C5."""

import asyncio
from typing import Dict, Optional

from petition_ai.core.exceptions import ValidationError
from petition_ai.schemas.criteria import CRITERIA_METADATA
from petition_ai.schemas.verification import (
    VERIFICATION_SCHEMAS,
    VERIFIED_CRITERIA,
    CriterionVerificationResult,
    DocumentVerificationResults,
    VerificationRecord,
)
from petition_ai.services.base_service import BaseService
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.pipeline.context_builder import ContextBuilder
from petition_ai.services.prompts.prompt_config import PromptConfigService, substitute_vars
from petition_ai.services.prompts.system_prompts import EVIDENCE_VERIFICATION_PROMPT
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


def verification_slug(criterion_id: str) -> str:
    return f"evidence-verify-{criterion_id.lower()}"


class DocumentVerificationService(BaseService):
    """Runs the five criterion checks for a document concurrently.

    All records written by one run share ``version`` = latest version for
    the document + 1. A failing criterion is reported in the results and
    does not stop the others.
    """

    def __init__(
        self,
        store: CaseStore,
        completion: StructuredCompletionService,
        prompts: PromptConfigService,
    ):
        super().__init__(store)
        self.completion = completion
        self.prompts = prompts
        self.context_builder = ContextBuilder(store)

    def validate(self, case_id: str, document_id: str, document_text: Optional[str] = None):
        if not document_id:
            raise ValidationError("document_id is required")

    async def run(
        self,
        case_id: str,
        document_id: str,
        document_text: Optional[str] = None,
    ) -> DocumentVerificationResults:
        document = await self.store.get_document(case_id, document_id)
        if document_text is None:
            if document is None or not document.content:
                raise ValidationError(f"Document {document_id} has no text to verify")
            document_text = document.content

        context = await self.context_builder.build_base_context(case_id)
        version = await self.store.get_latest_verification_version(document_id) + 1

        LOGGER.info(
            f"Verifying document {document_id} for case {case_id} (v{version})",
            extra={"case_id": case_id, "document_id": document_id, "version": version},
        )

        outcomes = await asyncio.gather(
            *(self.verify_criterion(c, document_text, context) for c in VERIFIED_CRITERIA),
            return_exceptions=True,
        )

        # The store session is not safe for concurrent writes
        results: Dict[str, CriterionVerificationResult] = {}
        for criterion_id, outcome in zip(VERIFIED_CRITERIA, outcomes):
            try:
                if isinstance(outcome, BaseException):
                    raise outcome
                await self.store.append_verification(
                    VerificationRecord(
                        case_id=case_id,
                        document_id=document_id,
                        criterion=criterion_id,
                        version=version,
                        score=outcome["score"],
                        recommendation=outcome["recommendation"],
                        data=outcome,
                        document_name=document.name if document else None,
                    )
                )
            except Exception as e:
                LOGGER.warning(
                    f"Verification of {criterion_id} failed for document {document_id}: {e}",
                    extra={"criterion_id": criterion_id, "document_id": document_id},
                )
                results[criterion_id] = CriterionVerificationResult(
                    success=False, error=str(e) or "Verification failed"
                )
                continue
            results[criterion_id] = CriterionVerificationResult(success=True, data=outcome)

        return DocumentVerificationResults(document_id=document_id, version=version, results=results)

    async def verify_criterion(self, criterion_id: str, document_text: str, context: str) -> dict:
        meta = CRITERIA_METADATA[criterion_id]
        config = await self.prompts.resolve(verification_slug(criterion_id), EVIDENCE_VERIFICATION_PROMPT)
        system = substitute_vars(config.content, {"criterion_id": criterion_id, "criterion_name": meta.name})
        prompt = f"=== CASE CONTEXT ===\n{context}\n\n=== DOCUMENT TO VERIFY ===\n{document_text}"

        result = await self.completion.complete(system, prompt, VERIFICATION_SCHEMAS[criterion_id], config=config)
        return result.model_dump(mode="json")
