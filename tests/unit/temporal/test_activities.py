"""Tests for Temporal activities run against the in-memory store."""

from contextlib import asynccontextmanager

import pytest
from temporalio.exceptions import ApplicationError
from temporalio.testing import ActivityEnvironment

from petition_ai.services.pipeline.context_builder import GAP_ANALYSIS, STRENGTH_EVALUATION
from petition_ai.temporal.activities import documents, extraction, pipeline
from petition_ai.temporal.core.service_factory import CaseServices

from conftest import criterion_in_prompt, make_unit_payload


@pytest.fixture
def services(store, completion, prompts):
    return CaseServices(store=store, completion=completion, prompts=prompts)


@pytest.fixture(autouse=True)
def patched_services(monkeypatch, services):
    @asynccontextmanager
    async def fake_open_case_services():
        yield services

    for module in (documents, extraction, pipeline):
        monkeypatch.setattr(module, "open_case_services", fake_open_case_services)


@pytest.fixture
def env():
    return ActivityEnvironment()


class TestExtractionActivities:
    """Tests for extraction and seeding activities."""

    @pytest.mark.asyncio
    async def test_extraction_then_seed(self, env, store, case_id, llm_client, reply_with):
        """Test extraction persists one run and seeding creates version 1."""
        heartbeats = []
        env.on_heartbeat = lambda *details: heartbeats.append(details[0])
        llm_client.generate_content.side_effect = reply_with(
            lambda system, prompt: make_unit_payload(criterion_in_prompt(prompt), strength="Strong")
        )

        result = await env.run(extraction.multipass_extraction_activity, case_id, "CV text for Ada Park")

        assert result == {"case_id": case_id, "failed_criteria": [], "criteria_with_evidence": 10}
        assert sorted(heartbeats) == sorted(f"C{i}" for i in range(1, 11))
        assert await store.get_latest_extraction(case_id) is not None

        seeded = await env.run(extraction.seed_analysis_activity, case_id)
        assert seeded == {"case_id": case_id, "version": 1, "strong_count": 10, "weak_count": 0}

    @pytest.mark.asyncio
    async def test_survey_overlay_persisted(self, env, store, case_id, llm_client, reply_with):
        """Test survey data is merged before the extraction is stored."""
        llm_client.generate_content.side_effect = reply_with(
            lambda system, prompt: make_unit_payload(criterion_in_prompt(prompt), items={}, strength="None")
        )
        survey = {"awards": {"awards": [{"name": "Turing Prize", "scope": "international", "year": 2023}]}}

        await env.run(extraction.multipass_extraction_activity, case_id, "CV text", survey)

        stored = await store.get_latest_extraction(case_id)
        assert [a.name for a in stored.awards] == ["Turing Prize"]

    @pytest.mark.asyncio
    async def test_empty_text_not_retried(self, env, case_id):
        with pytest.raises(ApplicationError) as exc_info:
            await env.run(extraction.multipass_extraction_activity, case_id, "")
        assert exc_info.value.non_retryable

    @pytest.mark.asyncio
    async def test_seed_without_extraction(self, env, case_id):
        result = await env.run(extraction.seed_analysis_activity, case_id)
        assert result["version"] == 0


class TestStageActivity:
    """Tests for run_stage_activity."""

    @pytest.mark.asyncio
    async def test_missing_predecessor_not_retried(self, env, case_id, llm_client):
        """Test gating errors become non-retryable application errors."""
        with pytest.raises(ApplicationError) as exc_info:
            await env.run(pipeline.run_stage_activity, case_id, GAP_ANALYSIS)

        assert exc_info.value.non_retryable
        assert exc_info.value.type == "PredecessorMissing"
        assert exc_info.value.details == (STRENGTH_EVALUATION,)
        llm_client.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_stage_not_retried(self, env, case_id):
        with pytest.raises(ApplicationError) as exc_info:
            await env.run(pipeline.run_stage_activity, case_id, "final_review")
        assert exc_info.value.type == "ValidationError"

    @pytest.mark.asyncio
    async def test_stage_completes(self, env, case_id, stage_llm):
        result = await env.run(pipeline.run_stage_activity, case_id, STRENGTH_EVALUATION)
        assert result == {"case_id": case_id, "stage": STRENGTH_EVALUATION, "status": "completed"}


class TestDocumentActivities:
    """Tests for document-added activities."""

    @pytest.mark.asyncio
    async def test_verify_missing_text_not_retried(self, env, store, case_id):
        document = store.add_document(case_id, "scan.pdf")

        with pytest.raises(ApplicationError) as exc_info:
            await env.run(documents.verify_document_activity, case_id, document.id)
        assert exc_info.value.non_retryable

    @pytest.mark.asyncio
    async def test_incremental_skips_document_without_text(self, env, store, case_id, llm_client):
        document = store.add_document(case_id, "scan.pdf")

        result = await env.run(documents.incremental_analysis_activity, case_id, document.id)

        assert result == {"case_id": case_id, "updated": False, "version": None}
        llm_client.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_incremental_without_analysis(self, env, store, case_id, llm_client):
        """Test a case with no analysis yet is left untouched."""
        document = store.add_document(case_id, "award.pdf", content="Turing Prize 2023")

        result = await env.run(documents.incremental_analysis_activity, case_id, document.id)

        assert result["updated"] is False
        llm_client.generate_content.assert_not_awaited()
