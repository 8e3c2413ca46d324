"""Pytest configuration and shared fixtures."""

import json
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from petition_ai.schemas.criteria import CRITERIA_METADATA
from petition_ai.services.completion import StructuredCompletionService
from petition_ai.services.prompts.prompt_config import InMemoryPromptSource, PromptConfigService
from petition_ai.services.store.memory_store import InMemoryCaseStore

# One representative evidence item per criterion unit
SAMPLE_ITEMS: Dict[str, Dict[str, List[Dict[str, Any]]]] = {
    "C1": {"awards": [{"name": "Best Paper Award", "issuer": "ACM", "year": 2021, "scope": "international"}]},
    "C2": {"memberships": [{"organization": "IEEE", "role": "Fellow"}]},
    "C3": {"media_coverage": [{"outlet": "Wired", "title": "The engineer rebuilding search", "about_the_person": True}]},
    "C4": {"judging_activities": [{"type": "peer_review", "venue": "NeurIPS"}]},
    "C5": {
        "original_contributions": [{"description": "Streaming compression algorithm adopted by three vendors"}],
        "patents": [{"title": "Adaptive codec", "number": "US1234567"}],
        "grants": [],
    },
    "C6": {"publications": [{"title": "Learned Indexes", "venue": "SIGMOD", "year": 2020}]},
    "C7": {"exhibitions": [{"venue": "MoMA", "title": "Signals"}]},
    "C8": {"leadership_roles": [{"title": "CTO", "organization": "Acme Robotics"}]},
    "C9": {"compensation": [{"amount": 450000, "currency": "USD", "context": "Base salary"}]},
    "C10": {"commercial_success": [{"description": "Platinum record"}]},
}


def make_unit_payload(
    criterion_id: str,
    strength: str = "Weak",
    items: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    key_evidence: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """A valid extraction unit reply for ``criterion_id``."""
    collections = SAMPLE_ITEMS[criterion_id] if items is None else items
    count = sum(len(v) for v in collections.values())
    return {
        **collections,
        "criteria_summary": {
            "criterion_id": criterion_id,
            "evidence_count": count,
            "strength": strength,
            "summary": f"{count} item(s) for {CRITERIA_METADATA[criterion_id].name}",
            "key_evidence": key_evidence or [],
        },
    }


def criterion_in_prompt(prompt: str) -> str:
    """The criterion id named in an extraction unit prompt."""
    head = prompt.split(":", 1)[0]
    return head.rsplit(" ", 1)[-1]


@pytest.fixture
def store() -> InMemoryCaseStore:
    return InMemoryCaseStore()


@pytest.fixture
def case_id(store: InMemoryCaseStore) -> str:
    return store.create_case("case-1")


@pytest.fixture
def prompt_source() -> InMemoryPromptSource:
    return InMemoryPromptSource()


@pytest.fixture
def prompts(prompt_source: InMemoryPromptSource) -> PromptConfigService:
    return PromptConfigService(prompt_source, ttl_seconds=60)


@pytest.fixture
def llm_client() -> AsyncMock:
    """LLM client double; set ``generate_content.side_effect`` or ``return_value``."""
    client = AsyncMock()
    client.generate_content.return_value = "{}"
    return client


@pytest.fixture
def completion(llm_client: AsyncMock) -> StructuredCompletionService:
    return StructuredCompletionService(llm_client, provider="gemini")


@pytest.fixture
def reply_with() -> Callable[[Callable[[str, str], Any]], Callable]:
    """Wrap ``fn(system, prompt) -> dict | str`` as a ``generate_content`` side effect."""

    def wrap(fn: Callable[[str, str], Any]) -> Callable:
        async def side_effect(contents, system_instruction=None, generation_config=None):
            reply = fn(system_instruction or "", contents)
            if isinstance(reply, BaseException):
                raise reply
            return reply if isinstance(reply, str) else json.dumps(reply)

        return side_effect

    return wrap


@pytest.fixture
def unit_payload() -> Callable[..., Dict[str, Any]]:
    return make_unit_payload


@pytest.fixture
def prompt_criterion() -> Callable[[str], str]:
    return criterion_in_prompt


# Minimal schema-valid replies for each cascade completion, keyed by the
# opening words of the user prompt the stage sends.
STAGE_REPLIES: Dict[str, Dict[str, Any]] = {
    "Evaluate the following applicant data": {
        "applicant_name": "Ada Park",
        "detected_field": "STEM",
        "criteria_evaluations": {
            "C1": {"tier": 2, "score": 7.5, "satisfied": True, "evidence_count": 1, "rfe_risk": "LOW"},
        },
        "step1_assessment": {"criteria_satisfied_count": 1, "step1_result": "NOT_SATISFIED"},
        "overall_assessment": {
            "petition_strength": "MODERATE",
            "overall_score": 6.0,
            "recommendation": "STRENGTHEN_FIRST",
        },
    },
    "Perform a comprehensive gap analysis": {
        "gap_analysis": {
            "applicant_name": "Ada Park",
            "executive_summary": {
                "overall_case_strength": "MODERATE",
                "criteria_satisfied_count": 1,
                "total_gaps_identified": 2,
            },
            "critical_gaps": [{"priority": "HIGH", "criterion": "C3", "issue": "No media coverage"}],
            "filing_decision": {"recommendation": "WAIT_6_MONTHS", "rationale": "Two criteria short"},
        },
    },
    "Develop a comprehensive case strategy": {
        "case_strategy": {"strategy_summary": "Lead with awards and judging"},
    },
    "Consolidate all upstream pipeline outputs": {
        "case_consolidation": {
            "candidate_profile": {"name": "Ada Park", "field_of_expertise": "Databases", "current_position": "CTO"},
            "risk_assessment": {"overall_risk_level": "MODERATE", "overall_risk_rationale": "Thin media record"},
        },
    },
    "Perform a qualitative denial probability assessment": {
        "kazarian_analysis": {
            "step1": {"status": "MET", "criteria_claimed": 4, "criteria_likely_satisfied": 3, "critical_threshold_met": True},
            "step2": {
                "status": "LIKELY",
                "sustained_acclaim": "MODERATE",
                "top_of_field": "WEAK",
                "geographic_scope": "international",
                "timeline_coverage": "2018-2024",
                "risk_score": 40,
            },
        },
        "field_context": {"field": "STEM", "baseline_approval_rate": 70, "case_vs_typical": "AT"},
        "criterion_risk_assessments": [],
        "letter_analysis": {
            "total_letters": 0,
            "independent_count": 0,
            "independent_pct": 0,
            "collaborative_count": 0,
            "geographic_diversity": "none",
            "portfolio_risk": "HIGH",
        },
        "red_flags": [{"level": "LOW", "description": "Short career"}],
        "strengths": ["Publications at top venues"],
    },
    "Compute probability breakdown": {
        "probability_breakdown": {
            "base_denial_rate": 30,
            "adjustments": [{"factor": "Major award", "delta_pct": -10}],
            "final_denial_probability": 12,
        },
        "overall_assessment": {
            "risk_level": "LOW",
            "denial_probability_pct": 99,
            "rfe_probability_pct": 1,
            "confidence": "MEDIUM",
            "summary": "Moderate case",
        },
        "recommendations": {},
        "filing_recommendation": {"recommendation": "FILE_NOW", "rationale": "Ready"},
    },
}


def stage_reply(prompt: str) -> Dict[str, Any]:
    """The canned reply for the cascade completion ``prompt`` belongs to."""
    for prefix, reply in STAGE_REPLIES.items():
        if prompt.startswith(prefix):
            return json.loads(json.dumps(reply))
    raise AssertionError(f"Unexpected prompt: {prompt[:80]}")


@pytest.fixture
def stage_llm(llm_client: AsyncMock, reply_with) -> AsyncMock:
    """``llm_client`` answering every cascade completion with a valid reply."""
    llm_client.generate_content.side_effect = reply_with(lambda system, prompt: stage_reply(prompt))
    return llm_client


# Criterion-specific fields each C1..C5 verification reply must carry
VERIFICATION_EXTRAS: Dict[str, Dict[str, Any]] = {
    "C1": {},
    "C2": {"three_part_test": {
        "outstanding_achievement_required": True,
        "expert_judgment_documented": True,
        "distinct_from_employment": True,
    }},
    "C3": {"about_test": {
        "primarily_about_petitioner": True,
        "major_media_or_trade_pub": False,
        "title_date_author_present": True,
        "independent_editorial": True,
    }},
    "C4": {"judging_test": {
        "actual_participation_proven": True,
        "peers_not_students": True,
        "venue_prestige_documented": False,
        "sustained_pattern": False,
    }},
    "C5": {"significance_indicators": {
        "widespread_adoption": True,
        "commercial_validation": False,
        "research_impact": True,
        "independent_adoption": False,
        "expert_validation": True,
        "field_transformation": False,
        "indicators_met": 3,
    }},
}


def verification_reply(criterion_id: str, score: float = 7.0) -> Dict[str, Any]:
    """A valid verification reply for ``criterion_id``."""
    return {
        "criterion": criterion_id,
        "document_type": "award_letter",
        "evidence_tier": 2,
        "score": score,
        "recommendation": "INCLUDE_WITH_SUPPORT",
        "reasoning": f"Supports {criterion_id}",
        **VERIFICATION_EXTRAS[criterion_id],
    }


def criterion_in_system(system: str) -> str:
    """The criterion id named in a verification system prompt."""
    return system.split("EB-1A criterion ", 1)[1].split()[0]
