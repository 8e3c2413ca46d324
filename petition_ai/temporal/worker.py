"""Temporal worker for case analysis.

Connects to the configured Temporal server, discovers every registered
workflow and activity, and runs one worker per task queue.
"""

import asyncio

from temporalio.client import Client
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import SandboxedWorkflowRunner, SandboxRestrictions

from petition_ai.core.config import settings
from petition_ai.core.database import init_database
from petition_ai.temporal.core.discovery import discover_all

discover_all()

from petition_ai.temporal.core.activity_registry import ActivityRegistry  # noqa: E402
from petition_ai.temporal.core.constants import DEFAULT_TASK_QUEUE  # noqa: E402
from petition_ai.temporal.core.workflow_registry import WorkflowRegistry  # noqa: E402
from petition_ai.utils.logging import get_logger  # noqa: E402

LOGGER = get_logger(__name__)

MAX_CONNECT_ATTEMPTS = 5
CONNECT_RETRY_DELAY_SECONDS = 5


async def connect_client() -> Client:
    """Connect to Temporal, retrying while the server comes up."""
    target = f"{settings.temporal_host}:{settings.temporal_port}"
    for attempt in range(MAX_CONNECT_ATTEMPTS):
        try:
            LOGGER.info(
                f"Connecting to Temporal server at {target} "
                f"(Attempt {attempt + 1}/{MAX_CONNECT_ATTEMPTS})"
            )
            return await Client.connect(target_host=target, namespace=settings.temporal_namespace)
        except Exception as e:
            if attempt >= MAX_CONNECT_ATTEMPTS - 1:
                LOGGER.error(f"Failed to connect to Temporal server after {MAX_CONNECT_ATTEMPTS} attempts: {e}")
                raise
            LOGGER.warning(f"Connection attempt {attempt + 1} failed: {e}. Retrying in {CONNECT_RETRY_DELAY_SECONDS}s...")
            await asyncio.sleep(CONNECT_RETRY_DELAY_SECONDS)


def group_by_queue() -> dict:
    """Registered workflow classes keyed by task queue."""
    queues = {}
    for wf_name, metadata in WorkflowRegistry.get_all_workflows().items():
        queue = metadata.task_queue or DEFAULT_TASK_QUEUE
        queues.setdefault(queue, []).append(metadata.workflow_class)
        LOGGER.debug(f"Workflow '{wf_name}' assigned to queue '{queue}'")
    return queues


def build_workers(client: Client) -> list:
    """One worker per task queue, each carrying every registered activity."""
    queues = group_by_queue()
    all_activities = ActivityRegistry.get_all_activities()
    LOGGER.info(f"Registered {sum(len(w) for w in queues.values())} workflows and {len(all_activities)} activities")

    return [
        Worker(
            client,
            task_queue=queue_name,
            workflows=workflows,
            activities=list(all_activities.values()),
            max_concurrent_activities=10,
            max_concurrent_workflow_tasks=20,
            workflow_runner=SandboxedWorkflowRunner(
                restrictions=SandboxRestrictions.default.with_passthrough_all_modules()
            ),
        )
        for queue_name, workflows in queues.items()
    ]


async def main():
    """Start the Temporal worker(s)."""
    db_client = await init_database()
    try:
        client = await connect_client()
        LOGGER.info("Successfully connected to Temporal server")

        workers = build_workers(client)
        LOGGER.info(f"Workers are now polling for tasks on {len(workers)} queue(s)...")
        await asyncio.gather(*(worker.run() for worker in workers))
    finally:
        await db_client.disconnect()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        LOGGER.info("Workers stopped by user")
