"""Tests for the case agent's tools."""

import pytest

from petition_ai.schemas.agent import ToolCall
from petition_ai.services.agent.case_tools import CaseTools
from petition_ai.services.analysis.version_store import AnalysisVersionService


@pytest.fixture
def tools(store, case_id):
    return CaseTools(case_id, store, AnalysisVersionService(store))


class TestCaseTools:
    """Tests for CaseTools."""

    @pytest.mark.asyncio
    async def test_update_profile_deep_merges(self, tools, store, case_id):
        """Test nested profile updates keep untouched keys."""
        await store.put_profile(case_id, {"name": "Ada Park", "employment": {"title": "Engineer", "org": "Acme"}})

        result = await tools.dispatch(ToolCall(name="update_profile", arguments={
            "updates": {"employment": {"title": "CTO"}, "field": "Databases"},
        }))

        assert result.success
        assert await store.get_profile(case_id) == {
            "name": "Ada Park",
            "employment": {"title": "CTO", "org": "Acme"},
            "field": "Databases",
        }
        assert result.result["profile_keys"] == ["employment", "field", "name"]

    @pytest.mark.asyncio
    async def test_get_latest_analysis_empty(self, tools):
        result = await tools.dispatch(ToolCall(name="get_latest_analysis"))
        assert result.result == {"exists": False, "version": 0, "criteria": None}

    @pytest.mark.asyncio
    async def test_update_analysis_is_upgrade_only(self, tools):
        """Test the tool goes through the versioned, upgrade-only merge."""
        first = await tools.dispatch(ToolCall(name="update_analysis", arguments={"updates": [
            {"criterion_id": "C8", "strength": "Strong", "reason": "CTO of a distinguished company", "evidence": []},
        ]}))
        second = await tools.dispatch(ToolCall(name="update_analysis", arguments={"updates": [
            {"criterion_id": "C8", "strength": "Weak", "reason": "user doubts it", "evidence": ["title only"]},
        ]}))

        assert first.result["version"] == 1
        assert second.result["version"] == 2
        assert second.result["updated"] == ["C8"]
        latest = await tools.dispatch(ToolCall(name="get_latest_analysis"))
        c8 = next(c for c in latest.result["criteria"] if c["criterion_id"] == "C8")
        assert c8["strength"] == "Strong"
        assert c8["evidence"] == ["title only"]
        assert latest.result["strong_count"] == 1

    @pytest.mark.asyncio
    async def test_update_analysis_unknown_criterion(self, tools, store, case_id):
        """Test an unknown criterion fails the call and writes nothing."""
        result = await tools.dispatch(ToolCall(name="update_analysis", arguments={"updates": [
            {"criterion_id": "C11", "strength": "Strong", "reason": "r"},
        ]}))

        assert not result.success
        assert "C11" in result.error
        assert await store.get_latest_version(case_id) is None

    @pytest.mark.asyncio
    async def test_update_analysis_malformed_update(self, tools):
        result = await tools.dispatch(ToolCall(name="update_analysis", arguments={"updates": [{"strength": "Strong"}]}))
        assert not result.success

    @pytest.mark.asyncio
    @pytest.mark.parametrize("threshold", [1, 5, 10])
    async def test_update_threshold_in_range(self, tools, store, case_id, threshold):
        result = await tools.dispatch(ToolCall(name="update_threshold", arguments={"threshold": threshold}))

        assert result.success
        assert result.result == {"success": True, "new_threshold": threshold}
        assert await store.get_criteria_threshold(case_id) == threshold

    @pytest.mark.asyncio
    @pytest.mark.parametrize("threshold", [0, 11, True, 3.5, "4"])
    async def test_update_threshold_rejected(self, tools, store, case_id, threshold):
        """Test out-of-range and non-integer thresholds leave the case unchanged."""
        before = await store.get_criteria_threshold(case_id)

        result = await tools.dispatch(ToolCall(name="update_threshold", arguments={"threshold": threshold}))

        assert not result.success
        assert await store.get_criteria_threshold(case_id) == before

    @pytest.mark.asyncio
    async def test_unexpected_arguments(self, tools):
        """Test wrong tool arguments are reported back instead of raised."""
        result = await tools.dispatch(ToolCall(name="update_threshold", arguments={"value": 3}))
        assert not result.success
        assert result.error
