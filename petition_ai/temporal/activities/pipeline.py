"""Temporal activities for the stage cascade."""

from temporalio import activity
from temporalio.exceptions import ApplicationError

from petition_ai.core.exceptions import PredecessorMissing, ValidationError
from petition_ai.services.pipeline.stage_gate import PipelineStageGate
from petition_ai.temporal.core.activity_registry import ActivityRegistry
from petition_ai.temporal.core.service_factory import open_case_services
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


@ActivityRegistry.register("case", "run_stage_activity")
@activity.defn(name="run_stage_activity")
async def run_stage_activity(case_id: str, stage_name: str) -> dict:
    """Run one cascade stage against the case's stored outputs.

    Gating and unknown-stage errors are not retried; retrying cannot make
    a missing predecessor appear.
    """
    try:
        async with open_case_services() as services:
            gate = PipelineStageGate(services.store, services.completion, services.prompts)
            result = await gate.run_stage(case_id, stage_name)
            return {
                "case_id": case_id,
                "stage": stage_name,
                "status": result.status.value,
            }
    except PredecessorMissing as e:
        raise ApplicationError(
            str(e), e.required_stage, type="PredecessorMissing", non_retryable=True
        ) from e
    except ValidationError as e:
        raise ApplicationError(str(e), type="ValidationError", non_retryable=True) from e
    except Exception as e:
        LOGGER.error(f"Stage {stage_name} failed for case {case_id}: {e}", exc_info=True)
        raise
