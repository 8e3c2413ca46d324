"""Text context for the analysis cascade.

Each stage's context is its predecessor's context plus the predecessor's
latest stored output, so context only grows down the cascade.
"""

import json
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from petition_ai.core.exceptions import PredecessorMissing
from petition_ai.schemas.case import CaseContext, DocumentInfo, RecommenderInfo
from petition_ai.schemas.stages import EvidenceInventory
from petition_ai.services.store.base import CaseStore

STRENGTH_EVALUATION = "strength_evaluation"
GAP_ANALYSIS = "gap_analysis"
CASE_STRATEGY = "case_strategy"
CASE_CONSOLIDATION = "case_consolidation"
RISK_PROBABILITY = "risk_probability"

CASCADE_ORDER = (STRENGTH_EVALUATION, GAP_ANALYSIS, CASE_STRATEGY, CASE_CONSOLIDATION)

# Stage -> the stage whose output it builds on
PREDECESSOR: Dict[str, str] = {
    GAP_ANALYSIS: STRENGTH_EVALUATION,
    CASE_STRATEGY: GAP_ANALYSIS,
    CASE_CONSOLIDATION: CASE_STRATEGY,
}

RISK_DEPENDENCIES = (STRENGTH_EVALUATION, GAP_ANALYSIS)

SECTION_TITLES: Dict[str, str] = {
    STRENGTH_EVALUATION: "STRENGTH EVALUATION",
    GAP_ANALYSIS: "GAP ANALYSIS",
    CASE_STRATEGY: "CASE STRATEGY",
    CASE_CONSOLIDATION: "CASE CONSOLIDATION",
}


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def section(title: str, body: str) -> str:
    return f"=== {title} ===\n{body}"


def _or_na(value: Any) -> Any:
    return "N/A" if value is None else value


def render_document(document: DocumentInfo) -> str:
    content = f"\nContent:\n{document.content}" if document.content else ""
    return f"- {document.name} ({document.type}, {document.source}, {document.status}){content}"


def render_recommender(r: RecommenderInfo) -> str:
    duration = r.duration_years
    if isinstance(duration, float) and duration.is_integer():
        duration = int(duration)
    return (
        f"- {r.name}, {r.title} at {_or_na(r.organization)}\n"
        f"  Relationship: {r.relationship_type} ({r.relationship_context})\n"
        f"  Credentials: {_or_na(r.credentials)}\n"
        f"  Bio: {_or_na(r.bio)}\n"
        f"  Duration: {_or_na(duration)} years"
    )


def render_base_context(context: CaseContext, extraction: Optional[Dict[str, Any]], analysis: Optional[Dict[str, Any]]) -> str:
    sections: List[str] = []

    if context.profile:
        sections.append(section("APPLICANT PROFILE", to_json(context.profile)))

    if extraction is not None:
        sections.append(section("EB-1A EXTRACTION", to_json(extraction)))

    if analysis is not None:
        sections.append(section(f"CRITERIA EVALUATION (v{analysis['version']})", to_json(analysis["criteria"])))

    if context.documents:
        body = "\n\n".join(render_document(d) for d in context.documents)
        sections.append(section(f"DOCUMENTS ({len(context.documents)})", body))

    if context.recommenders:
        body = "\n\n".join(render_recommender(r) for r in context.recommenders)
        sections.append(section(f"RECOMMENDERS ({len(context.recommenders)})", body))

    if context.latest_verification is not None:
        v = context.latest_verification
        body = (
            f"Criterion: {v.criterion}\n"
            f"Score: {v.score}\n"
            f"Recommendation: {v.recommendation}\n"
            f"Assessment: {to_json(v.data)}"
        )
        sections.append(section("DOCUMENT VERIFICATION", body))

    return "\n\n".join(sections)


class ContextBuilder:
    """Builds stage contexts from a ``CaseStore``."""

    def __init__(self, store: CaseStore):
        self.store = store

    async def build_base_context(self, case_id: str) -> str:
        """Profile, extraction, current analysis, documents, recommenders, verification.

        Raises:
            CaseNotFoundError: The case does not exist
        """
        context = await self.store.get_case_context(case_id)
        extraction = await self.store.get_latest_extraction(case_id)
        version = await self.store.get_latest_version(case_id)

        return render_base_context(
            context,
            extraction.model_dump(mode="json", exclude_none=True) if extraction else None,
            {
                "version": version.version,
                "criteria": [c.model_dump(mode="json") for c in version.criteria],
            } if version else None,
        )

    async def require_output(self, case_id: str, stage: str, required: str) -> Dict[str, Any]:
        """Latest output of ``required``, or raise ``PredecessorMissing`` for ``stage``."""
        output = await self.store.get_latest_stage_output(case_id, required)
        if output is None:
            raise PredecessorMissing(stage, required)
        return output

    async def build_stage_context(self, case_id: str, stage: str) -> str:
        """Context for one cascade stage.

        Raises:
            PredecessorMissing: An upstream stage has no stored output
        """
        required = PREDECESSOR.get(stage)
        if required is None:
            return await self.build_base_context(case_id)

        predecessor_output = await self.require_output(case_id, stage, required)
        parent_context = await self.build_stage_context(case_id, required)
        context = f"{parent_context}\n\n{section(SECTION_TITLES[required], to_json(predecessor_output))}"

        if stage == CASE_CONSOLIDATION:
            grouped = await self.verifications_by_criterion(case_id)
            context += f"\n\n{section('EVIDENCE VERIFICATION RESULTS', to_json(grouped))}"
        return context

    async def verifications_by_criterion(self, case_id: str) -> Dict[str, List[Dict[str, Any]]]:
        grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for record in await self.store.list_case_verifications(case_id):
            grouped[record.criterion].append({
                "document_name": record.document_name,
                "data": record.data,
                "score": record.score,
                "recommendation": record.recommendation,
            })
        return dict(grouped)

    async def build_risk_context(self, case_id: str) -> Tuple[str, EvidenceInventory]:
        """Inventory, base context, strength evaluation and gap analysis.

        Raises:
            PredecessorMissing: Strength evaluation or gap analysis is missing
        """
        outputs = {}
        for required in RISK_DEPENDENCIES:
            outputs[required] = await self.require_output(case_id, RISK_PROBABILITY, required)

        inventory = await self.store.get_inventory(case_id)
        parts = [inventory.to_text(), await self.build_base_context(case_id)]
        parts.extend(section(SECTION_TITLES[name], to_json(outputs[name])) for name in RISK_DEPENDENCIES)
        return "\n\n".join(parts), inventory
