"""Fan-in of extraction unit outcomes into one ``ExtractionDocument``.

The reduction is order independent: outcomes are processed in criterion
order whatever order they arrived in, item ids are assigned before
deduplication, and mapped criteria are kept sorted.
"""

import copy
from typing import Any, Dict, Iterable, List

from petition_ai.schemas.criteria import ALL_CRITERIA, CRITERIA_METADATA, CRITERION_ARRAY_KEYS, criterion_order
from petition_ai.schemas.extraction import MAX_KEY_EVIDENCE, ExtractionDocument, UnitOutcome
from petition_ai.utils.item_identity import EVIDENCE_CATEGORIES, generate_item_id


def empty_summary(criterion_id: str) -> Dict[str, Any]:
    name = CRITERIA_METADATA[criterion_id].name
    return {
        "criterion_id": criterion_id,
        "evidence_count": 0,
        "strength": "None",
        "summary": f"No evidence found for {name.lower()}",
        "key_evidence": [],
    }


def _union_criteria(existing: List[str], new: List[str]) -> List[str]:
    return sorted(set(existing or []) | set(new or []), key=criterion_order)


def assemble_extraction(outcomes: Iterable[UnitOutcome]) -> ExtractionDocument:
    """Merge the successful outcomes; failed or absent criteria get a None summary."""
    successes = sorted(
        (o for o in outcomes if o.success),
        key=lambda o: criterion_order(o.criterion_id),
    )

    collections: Dict[str, List[Dict[str, Any]]] = {key: [] for key in EVIDENCE_CATEGORIES}
    by_id: Dict[str, Dict[str, Dict[str, Any]]] = {key: {} for key in EVIDENCE_CATEGORIES}
    summaries: Dict[str, Dict[str, Any]] = {}

    for outcome in successes:
        for key in CRITERION_ARRAY_KEYS.get(outcome.criterion_id, []):
            for raw in outcome.data.get(key) or []:
                item = copy.deepcopy(raw)
                if not item.get("id"):
                    item["id"] = generate_item_id(key, item)

                existing = by_id[key].get(item["id"])
                if existing is not None:
                    existing["mapped_criteria"] = _union_criteria(
                        existing.get("mapped_criteria"), item.get("mapped_criteria")
                    )
                    continue

                if "mapped_criteria" in item:
                    item["mapped_criteria"] = _union_criteria(item["mapped_criteria"], [])
                by_id[key][item["id"]] = item
                collections[key].append(item)

        summary = outcome.data.get("criteria_summary")
        if summary and outcome.criterion_id not in summaries:
            summary = copy.deepcopy(summary)
            summary["key_evidence"] = list(summary.get("key_evidence") or [])[:MAX_KEY_EVIDENCE]
            summaries[outcome.criterion_id] = summary

    criteria_summary = [summaries.get(c) or empty_summary(c) for c in ALL_CRITERIA]

    return ExtractionDocument.model_validate({**collections, "criteria_summary": criteria_summary})
