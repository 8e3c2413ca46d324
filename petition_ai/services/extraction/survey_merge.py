"""Overlay survey answers onto an extraction and recompute the summaries."""

import copy
from typing import Any, Callable, Dict, List, Optional

from rapidfuzz.distance import Levenshtein

from petition_ai.schemas.criteria import ALL_CRITERIA, CRITERIA_METADATA
from petition_ai.schemas.extraction import MAX_KEY_EVIDENCE, ExtractionDocument
from petition_ai.utils.item_identity import assign_missing_ids

SIMILARITY_THRESHOLD = 0.7

# Short description of an item used as its key_evidence entry
EVIDENCE_DESCRIPTORS: Dict[str, Callable[[Dict[str, Any]], str]] = {
    "awards": lambda i: i.get("name") or "",
    "publications": lambda i: i.get("title") or "",
    "patents": lambda i: i.get("title") or "",
    "memberships": lambda i: i.get("organization") or "",
    "media_coverage": lambda i: i.get("outlet") or "",
    "judging_activities": lambda i: i.get("type") or "",
    "speaking_engagements": lambda i: i.get("event") or "",
    "grants": lambda i: i.get("title") or "",
    "leadership_roles": lambda i: f"{i.get('title')} at {i.get('organization')}",
    "compensation": lambda i: i.get("context") or "Compensation data",
    "exhibitions": lambda i: i.get("venue") or "",
    "commercial_success": lambda i: i.get("description") or "",
    "original_contributions": lambda i: i.get("description") or "",
}


def name_similarity(a: str, b: str) -> float:
    """Similarity in [0, 1] of two names, ignoring case and outer whitespace.

    One minus the Levenshtein distance over the longer length. A missing
    name matches nothing.
    """
    a, b = (a or "").lower().strip(), (b or "").lower().strip()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def map_scope(scope: Optional[str]) -> str:
    if not scope:
        return "unknown"
    lower = scope.lower()
    if "international" in lower or "global" in lower:
        return "international"
    if "national" in lower or "country" in lower:
        return "national"
    if "regional" in lower or "state" in lower:
        return "regional"
    if "local" in lower or "city" in lower:
        return "local"
    return "unknown"


def survey_awards_to_items(survey_awards: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not survey_awards or not survey_awards.get("awards"):
        return []
    return [
        {
            "name": award.get("name"),
            "issuer": award.get("issuer"),
            "year": award.get("year"),
            "scope": map_scope(award.get("scope")),
            "description": award.get("criteria"),
            "mapped_criteria": ["C1"],
            "source": "survey",
        }
        for award in survey_awards["awards"]
    ]


def merge_awards(extracted: List[Dict[str, Any]], survey: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Survey awards win over fuzzy-matching extracted ones; the rest are appended."""
    result = [{**item, "source": item.get("source") or "extracted"} for item in extracted]

    for survey_item in survey:
        match = next(
            (r for r in result if name_similarity(r.get("name"), survey_item.get("name")) >= SIMILARITY_THRESHOLD),
            None,
        )
        if match is None:
            result.append(dict(survey_item))
            continue
        scope = survey_item["scope"] if survey_item.get("scope") != "unknown" else match.get("scope")
        match.update({k: v for k, v in survey_item.items() if v is not None})
        match["source"] = "survey"
        match["scope"] = scope

    return result


def recalculate_criteria_summary(extraction: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Count-based summaries: three or more items is Strong, one or more Weak."""
    evidence: Dict[str, List[str]] = {c: [] for c in ALL_CRITERIA}
    for category, describe in EVIDENCE_DESCRIPTORS.items():
        for item in extraction.get(category) or []:
            for criterion_id in item.get("mapped_criteria") or []:
                if criterion_id in evidence:
                    evidence[criterion_id].append(describe(item))

    summaries = []
    for criterion_id in ALL_CRITERIA:
        items = evidence[criterion_id]
        count = len(items)
        strength = "Strong" if count >= 3 else "Weak" if count >= 1 else "None"
        name = CRITERIA_METADATA[criterion_id].name.lower()
        summaries.append({
            "criterion_id": criterion_id,
            "evidence_count": count,
            "strength": strength,
            "summary": (
                f"No evidence found for {name}" if strength == "None"
                else f"{count} piece(s) of evidence for {name}"
            ),
            "key_evidence": items[:MAX_KEY_EVIDENCE],
        })
    return summaries


def merge_extraction_with_survey(extraction: ExtractionDocument, survey: Dict[str, Any]) -> ExtractionDocument:
    """Return a new extraction with survey background and awards applied.

    Other survey sections are free text that was already given to the
    extraction units; they are not merged structurally.
    """
    merged = copy.deepcopy(extraction.model_dump(mode="json"))
    background = survey.get("background")

    if background:
        personal = merged.get("personal_info") or {}
        merged["personal_info"] = {
            **personal,
            "name": background.get("fullName") or personal.get("name"),
            "current_title": background.get("currentTitle") or personal.get("current_title"),
            "current_organization": background.get("currentEmployer") or personal.get("current_organization"),
            "field": background.get("areaOfExpertise") or personal.get("field"),
            "years_experience": (
                background["yearsExperience"] if background.get("yearsExperience") is not None
                else personal.get("years_experience")
            ),
            "source": "survey",
        }
        if background.get("education"):
            merged["education"] = [
                {
                    "degree": e.get("degree"),
                    "field": e.get("field"),
                    "institution": e.get("institution"),
                    "year": e.get("year"),
                    "source": "survey",
                }
                for e in background["education"]
            ]

    if survey.get("awards"):
        merged["awards"] = merge_awards(merged.get("awards") or [], survey_awards_to_items(survey["awards"]))
        assign_missing_ids("awards", merged["awards"])

    merged["criteria_summary"] = recalculate_criteria_summary(merged)
    return ExtractionDocument.model_validate(merged)
