"""Shared constants for Temporal workflows."""

from petition_ai.core.config import settings

# Task Queues
DEFAULT_TASK_QUEUE = settings.temporal_task_queue

# Timeouts
DEFAULT_WORKFLOW_TIMEOUT_SECONDS = 3600  # 1 hour
DEFAULT_ACTIVITY_TIMEOUT_SECONDS = 300   # 5 minutes
EXTRACTION_ACTIVITY_TIMEOUT_SECONDS = 900
