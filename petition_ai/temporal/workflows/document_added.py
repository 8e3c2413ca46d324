"""Workflow run when a document is added to an existing case."""

import asyncio
from datetime import timedelta
from typing import Dict

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from petition_ai.temporal.core.constants import DEFAULT_ACTIVITY_TIMEOUT_SECONDS
    from petition_ai.temporal.core.workflow_registry import WorkflowRegistry, WorkflowType


@WorkflowRegistry.register(category=WorkflowType.EVIDENCE)
@workflow.defn
class DocumentAddedWorkflow:
    """Verifies a new document and incrementally re-analyses its case.

    Both activities read the stored document and write disjoint tables, so
    they run concurrently.
    """

    def __init__(self):
        self._status = "initialized"

    @workflow.query
    def get_status(self) -> dict:
        return {"status": self._status}

    @workflow.run
    async def run(self, payload: Dict) -> dict:
        case_id = payload["case_id"]
        document_id = payload["document_id"]
        self._status = "running"

        options = dict(
            start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
            retry_policy=RetryPolicy(maximum_attempts=3),
        )
        verification, analysis = await asyncio.gather(
            workflow.execute_activity(
                "verify_document_activity", args=[case_id, document_id], **options
            ),
            workflow.execute_activity(
                "incremental_analysis_activity", args=[case_id, document_id], **options
            ),
        )

        self._status = "completed"
        return {
            "case_id": case_id,
            "document_id": document_id,
            "verification_version": verification.get("version"),
            "analysis_updated": analysis.get("updated", False),
            "analysis_version": analysis.get("version"),
        }
