"""Case analysis Temporal workflow.

Extraction, analysis seeding, the four cascade stages and the risk stage
run as activities in that order. One execution per case; the workflow id
is expected to be derived from the case id so a case never runs twice
concurrently.
"""

from datetime import timedelta
from typing import Dict, List, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from petition_ai.services.pipeline.context_builder import CASCADE_ORDER, RISK_PROBABILITY
    from petition_ai.temporal.core.constants import (
        DEFAULT_ACTIVITY_TIMEOUT_SECONDS,
        EXTRACTION_ACTIVITY_TIMEOUT_SECONDS,
    )
    from petition_ai.temporal.core.workflow_registry import WorkflowRegistry, WorkflowType

ACTIVITY_RETRY_POLICY = RetryPolicy(maximum_attempts=3)


@WorkflowRegistry.register(category=WorkflowType.CASE)
@workflow.defn
class CaseAnalysisWorkflow:
    """Temporal workflow for a full case analysis."""

    def __init__(self):
        self._status = "initialized"
        self._current_step: Optional[str] = None
        self._progress = 0.0
        self._completed_stages: List[str] = []

    @workflow.query
    def get_status(self) -> dict:
        """Query handler for real-time status updates."""
        return {
            "status": self._status,
            "current_step": self._current_step,
            "progress": self._progress,
            "completed_stages": list(self._completed_stages),
        }

    @workflow.run
    async def run(self, payload: Dict) -> dict:
        """Execute the case analysis workflow.

        ``payload`` carries ``case_id``, the case ``text`` and an optional
        ``survey`` dictionary.
        """
        case_id = payload["case_id"]
        self._status = "running"

        self._current_step = "multipass_extraction"
        self._progress = 0.05
        extraction = await workflow.execute_activity(
            "multipass_extraction_activity",
            args=[case_id, payload["text"], payload.get("survey")],
            start_to_close_timeout=timedelta(seconds=EXTRACTION_ACTIVITY_TIMEOUT_SECONDS),
            heartbeat_timeout=timedelta(seconds=EXTRACTION_ACTIVITY_TIMEOUT_SECONDS // 3),
            retry_policy=ACTIVITY_RETRY_POLICY,
        )

        self._current_step = "seed_analysis"
        self._progress = 0.35
        seeded = await workflow.execute_activity(
            "seed_analysis_activity",
            args=[case_id],
            start_to_close_timeout=timedelta(seconds=60),
            retry_policy=ACTIVITY_RETRY_POLICY,
        )

        stages = list(CASCADE_ORDER) + [RISK_PROBABILITY]
        for index, stage_name in enumerate(stages):
            self._current_step = stage_name
            self._progress = 0.4 + 0.6 * index / len(stages)
            await workflow.execute_activity(
                "run_stage_activity",
                args=[case_id, stage_name],
                start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=ACTIVITY_RETRY_POLICY,
            )
            self._completed_stages.append(stage_name)

        self._status = "completed"
        self._current_step = None
        self._progress = 1.0

        return {
            "case_id": case_id,
            "status": self._status,
            "failed_criteria": extraction.get("failed_criteria", []),
            "analysis_version": seeded.get("version"),
            "completed_stages": list(self._completed_stages),
        }
