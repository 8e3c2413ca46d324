"""Tests for re-analysis after a new document."""

import pytest

from petition_ai.schemas.analysis import CriterionUpdate
from petition_ai.services.analysis.incremental import (
    REEVALUATION_SLUG,
    RELEVANCE_SLUG,
    IncrementalAnalysisService,
)
from petition_ai.services.analysis.version_store import AnalysisVersionService
from petition_ai.services.prompts.prompt_config import PromptConfig

NEW_DOCUMENT = "Award letter: the applicant received the 2023 Turing Prize for data systems."


@pytest.fixture
def versions(store):
    return AnalysisVersionService(store)


@pytest.fixture
def service(store, completion, prompts, versions):
    return IncrementalAnalysisService(store, completion, prompts, versions=versions, relevance_text_limit=40)


def route(relevance, reevaluation):
    """Reply with ``relevance`` to the relevance pass and ``reevaluation`` otherwise."""

    def reply(system, prompt):
        if prompt.startswith("New document content"):
            return relevance
        return reevaluation

    return reply


class TestIncrementalAnalysisService:
    """Tests for IncrementalAnalysisService."""

    @pytest.mark.asyncio
    async def test_upgrade_merged_as_new_version(self, service, versions, case_id, llm_client, reply_with):
        """Test a relevant document re-evaluates only flagged criteria and appends a version."""
        await versions.apply_updates(case_id, [
            CriterionUpdate(criterion_id="C1", strength="Weak", reason="one award", evidence=["Best Paper 2021"]),
        ])
        llm_client.generate_content.side_effect = reply_with(route(
            {"affected_criterion_ids": ["C1"]},
            {"criteria": [
                {"criterion_id": "C1", "strength": "Strong", "reason": "major prize",
                 "evidence": ["Best Paper 2021", "2023 Turing Prize"]},
                {"criterion_id": "C6", "strength": "Strong", "reason": "not requested", "evidence": []},
            ]},
        ))

        version = await service.run(case_id, NEW_DOCUMENT)

        assert version.version == 2
        assert version.get("C1").strength == "Strong"
        assert version.get("C1").evidence == ["Best Paper 2021", "2023 Turing Prize"]
        # Criteria the relevance pass did not flag are not touched
        assert version.get("C6").strength == "None"

    @pytest.mark.asyncio
    async def test_reevaluated_weak_never_downgrades_strong(self, service, versions, case_id, llm_client, reply_with):
        """Test a Weak re-evaluation leaves an existing Strong in place."""
        await versions.apply_updates(case_id, [
            CriterionUpdate(criterion_id="C4", strength="Strong", reason="reviewer for NeurIPS", evidence=[]),
        ])
        llm_client.generate_content.side_effect = reply_with(route(
            {"affected_criterion_ids": ["C4"]},
            {"criteria": [{"criterion_id": "C4", "strength": "Weak", "reason": "one review", "evidence": ["ICML reviewer"]}]},
        ))

        version = await service.run(case_id, NEW_DOCUMENT)

        assert version.get("C4").strength == "Strong"
        assert version.get("C4").reason == "reviewer for NeurIPS"
        assert version.get("C4").evidence == ["ICML reviewer"]

    @pytest.mark.asyncio
    async def test_skips_without_current_analysis(self, service, case_id, llm_client):
        """Test nothing runs before a first analysis exists."""
        assert await service.run(case_id, NEW_DOCUMENT) is None
        llm_client.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_affected_criteria(self, service, versions, store, case_id, llm_client, reply_with):
        """Test an irrelevant document makes one call and writes nothing."""
        await versions.apply_updates(case_id, [CriterionUpdate(criterion_id="C1", strength="Weak", reason="r")])
        llm_client.generate_content.side_effect = reply_with(route({"affected_criterion_ids": []}, {}))

        assert await service.run(case_id, NEW_DOCUMENT) is None
        assert llm_client.generate_content.await_count == 1
        assert (await store.get_latest_version(case_id)).version == 1

    @pytest.mark.asyncio
    async def test_relevance_filters_unknown_ids_and_sorts(self, service, llm_client, reply_with):
        """Test ids outside C1..C10 are dropped and the rest ordered."""
        llm_client.generate_content.side_effect = reply_with(route(
            {"affected_criterion_ids": ["C10", "C2", "C99", "C2"]}, {},
        ))
        assert await service.find_affected_criteria(NEW_DOCUMENT) == ["C2", "C10"]

    @pytest.mark.asyncio
    async def test_relevance_text_truncated(self, service, llm_client, reply_with):
        """Test only the first ``relevance_text_limit`` characters are sent."""
        llm_client.generate_content.side_effect = reply_with(route({"affected_criterion_ids": []}, {}))

        await service.find_affected_criteria(NEW_DOCUMENT)

        prompt = llm_client.generate_content.call_args.kwargs["contents"]
        assert prompt.endswith(NEW_DOCUMENT[:40])
        assert NEW_DOCUMENT[40:] not in prompt

    @pytest.mark.asyncio
    async def test_reevaluation_context_includes_documents(self, service, store, case_id, llm_client, reply_with, prompt_source):
        """Test the re-evaluation prompt carries stored documents and the new text once."""
        store.add_document(case_id, "cv.pdf", content="Curriculum vitae text")
        store.add_document(case_id, "award.pdf", content=NEW_DOCUMENT)
        prompt_source.put(PromptConfig(slug=REEVALUATION_SLUG, content="Evaluate:\n{{criteria_details}}"))
        llm_client.generate_content.side_effect = reply_with(route({}, {"criteria": []}))

        updates = await service.reevaluate(case_id, ["C1"], NEW_DOCUMENT)

        assert updates == []
        kwargs = llm_client.generate_content.call_args.kwargs
        assert "Curriculum vitae text" in kwargs["contents"]
        assert kwargs["contents"].count(NEW_DOCUMENT) == 1
        assert kwargs["system_instruction"].startswith("Evaluate:\n- C1: Awards")

    @pytest.mark.asyncio
    async def test_relevance_slug_configurable(self, service, llm_client, reply_with, prompt_source):
        """Test the relevance pass reads its configured prompt."""
        prompt_source.put(PromptConfig(slug=RELEVANCE_SLUG, content="Pick from:\n{{criteria_list}}"))
        llm_client.generate_content.side_effect = reply_with(route({"affected_criterion_ids": []}, {}))

        await service.find_affected_criteria(NEW_DOCUMENT)

        system = llm_client.generate_content.call_args.kwargs["system_instruction"]
        assert system.startswith("Pick from:\n- C1: Awards")
        assert "- C10: Commercial Success" in system
