"""Tests for per-document evidence verification."""

import asyncio

import pytest

from conftest import criterion_in_system, verification_reply
from petition_ai.core.exceptions import SchemaValidationFailure, ValidationError
from petition_ai.schemas.verification import VERIFIED_CRITERIA, VerificationRecord
from petition_ai.services.verification.document_verifier import DocumentVerificationService


@pytest.fixture
def verifier(store, completion, prompts):
    return DocumentVerificationService(store, completion, prompts)


@pytest.fixture
def document(store, case_id):
    return store.add_document(case_id, "award.pdf", content="ACM Best Paper Award 2021 letter")


class TestDocumentVerificationService:
    """Tests for DocumentVerificationService."""

    @pytest.mark.asyncio
    async def test_all_criteria_share_one_version(self, verifier, store, case_id, document, llm_client, reply_with):
        """Test the five checks are stored under one version number."""
        llm_client.generate_content.side_effect = reply_with(
            lambda system, prompt: verification_reply(criterion_in_system(system))
        )

        results = await verifier.execute(case_id, document.id)

        assert results.version == 1
        assert set(results.results) == set(VERIFIED_CRITERIA)
        assert all(r.success for r in results.results.values())
        records = await store.list_verifications(document.id)
        assert len(records) == 5
        assert {r.version for r in records} == {1}
        assert {r.document_name for r in records} == {"award.pdf"}
        assert results.results["C5"].data["significance_indicators"]["indicators_met"] == 3

    @pytest.mark.asyncio
    async def test_version_follows_latest(self, verifier, store, case_id, document, llm_client, reply_with):
        """Test a re-run uses latest + 1."""
        await store.append_verification(VerificationRecord(
            case_id=case_id, document_id=document.id, criterion="C1", version=4,
            score=5.0, recommendation="NEEDS_MORE_DOCS", data={},
        ))
        llm_client.generate_content.side_effect = reply_with(
            lambda system, prompt: verification_reply(criterion_in_system(system))
        )

        results = await verifier.execute(case_id, document.id)

        assert results.version == 5
        assert await store.get_latest_verification_version(document.id) == 5

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self, verifier, store, case_id, document, llm_client, reply_with):
        """Test a failing criterion is reported while the rest are stored."""

        def reply(system, prompt):
            criterion_id = criterion_in_system(system)
            if criterion_id == "C3":
                return "not json"
            return verification_reply(criterion_id)

        llm_client.generate_content.side_effect = reply_with(reply)

        results = await verifier.execute(case_id, document.id)

        assert results.results["C3"].success is False
        assert "C3Verification" in results.results["C3"].error
        assert [c for c, r in results.results.items() if r.success] == ["C1", "C2", "C4", "C5"]
        assert {r.criterion for r in await store.list_verifications(document.id)} == {"C1", "C2", "C4", "C5"}

    @pytest.mark.asyncio
    async def test_score_out_of_range_fails_criterion(self, verifier, case_id, document, llm_client, reply_with):
        """Test a score outside 0-10 fails schema validation."""
        llm_client.generate_content.side_effect = reply_with(
            lambda system, prompt: verification_reply(criterion_in_system(system), score=12)
        )

        results = await verifier.execute(case_id, document.id)

        assert not any(r.success for r in results.results.values())

    @pytest.mark.asyncio
    async def test_explicit_text_overrides_stored_content(self, verifier, case_id, document, llm_client, reply_with):
        """Test caller-supplied text is what gets verified."""
        llm_client.generate_content.side_effect = reply_with(
            lambda system, prompt: verification_reply(criterion_in_system(system))
        )

        await verifier.execute(case_id, document.id, document_text="Judging invitation from NeurIPS")

        prompt = llm_client.generate_content.call_args.kwargs["contents"]
        assert prompt.endswith("=== DOCUMENT TO VERIFY ===\nJudging invitation from NeurIPS")

    @pytest.mark.asyncio
    async def test_document_without_text(self, verifier, store, case_id, llm_client):
        """Test a document with no content and no supplied text is rejected."""
        empty = store.add_document(case_id, "scan.pdf")

        with pytest.raises(ValidationError):
            await verifier.execute(case_id, empty.id)
        llm_client.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_document_id(self, verifier, case_id):
        with pytest.raises(ValidationError):
            await verifier.execute(case_id, "")

    @pytest.mark.asyncio
    async def test_verify_criterion_raises_on_bad_output(self, verifier, llm_client):
        """Test the single-criterion call surfaces schema failures."""
        llm_client.generate_content.return_value = '{"criterion": "C1"}'

        with pytest.raises(SchemaValidationFailure):
            await verifier.verify_criterion("C1", "text", "")

    @pytest.mark.asyncio
    async def test_records_written_one_at_a_time(self, verifier, store, case_id, document, llm_client, reply_with, monkeypatch):
        """Test writes never overlap and follow criterion order."""
        original = store.append_verification
        in_flight = []
        written = []

        async def exclusive_append(record):
            assert not in_flight, "concurrent store write"
            in_flight.append(record.criterion)
            await asyncio.sleep(0)
            await original(record)
            written.append(record.criterion)
            in_flight.pop()

        monkeypatch.setattr(store, "append_verification", exclusive_append)
        llm_client.generate_content.side_effect = reply_with(
            lambda system, prompt: verification_reply(criterion_in_system(system))
        )

        results = await verifier.execute(case_id, document.id)

        assert all(r.success for r in results.results.values())
        assert written == list(VERIFIED_CRITERIA)
        assert list(results.results) == list(VERIFIED_CRITERIA)

    @pytest.mark.asyncio
    async def test_write_failure_isolated_to_criterion(self, verifier, store, case_id, document, llm_client, reply_with, monkeypatch):
        """Test a failed store write marks only that criterion as failed."""
        original = store.append_verification

        async def failing_append(record):
            if record.criterion == "C2":
                raise RuntimeError("write rejected")
            await original(record)

        monkeypatch.setattr(store, "append_verification", failing_append)
        llm_client.generate_content.side_effect = reply_with(
            lambda system, prompt: verification_reply(criterion_in_system(system))
        )

        results = await verifier.execute(case_id, document.id)

        assert results.results["C2"].success is False
        assert results.results["C2"].error == "write rejected"
        assert {r.criterion for r in await store.list_verifications(document.id)} == {"C1", "C3", "C4", "C5"}
