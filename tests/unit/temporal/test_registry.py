"""Tests for Temporal component discovery and registration."""

from petition_ai.temporal.core.activity_registry import ActivityRegistry
from petition_ai.temporal.core.discovery import discover_all
from petition_ai.temporal.core.workflow_registry import WorkflowRegistry, WorkflowType
from petition_ai.temporal.worker import group_by_queue


def test_discover_registers_workflows():
    discover_all()

    workflows = WorkflowRegistry.get_all_workflows()
    assert {"CaseAnalysisWorkflow", "DocumentAddedWorkflow"} <= set(workflows)
    assert [w.name for w in WorkflowRegistry.get_by_category(WorkflowType.EVIDENCE)] == ["DocumentAddedWorkflow"]


def test_discover_registers_activities():
    discover_all()

    activities = ActivityRegistry.get_all_activities()
    assert {
        "case:multipass_extraction_activity",
        "case:seed_analysis_activity",
        "case:run_stage_activity",
        "evidence:verify_document_activity",
        "evidence:incremental_analysis_activity",
    } <= set(activities)
    assert len(ActivityRegistry.get_by_category("evidence")) == 2


def test_workflows_grouped_on_default_queue():
    from petition_ai.temporal.core.constants import DEFAULT_TASK_QUEUE

    queues = group_by_queue()
    names = {cls.__name__ for cls in queues[DEFAULT_TASK_QUEUE]}
    assert {"CaseAnalysisWorkflow", "DocumentAddedWorkflow"} <= names
