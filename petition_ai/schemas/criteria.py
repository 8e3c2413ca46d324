"""The ten evaluation criteria and their fixed metadata."""

from typing import Dict, List, Literal, Tuple

from pydantic import BaseModel

CriterionId = Literal["C1", "C2", "C3", "C4", "C5", "C6", "C7", "C8", "C9", "C10"]
StrengthLabel = Literal["Strong", "Weak", "None"]

ALL_CRITERIA: Tuple[str, ...] = ("C1", "C2", "C3", "C4", "C5", "C6", "C7", "C8", "C9", "C10")

STRENGTH_RANK: Dict[str, int] = {"None": 0, "Weak": 1, "Strong": 2}
RANK_TO_STRENGTH: Dict[int, str] = {rank: label for label, rank in STRENGTH_RANK.items()}


class CriterionMetadata(BaseModel):
    name: str
    description: str


CRITERIA_METADATA: Dict[str, CriterionMetadata] = {
    "C1": CriterionMetadata(name="Awards", description="Nationally/internationally recognized prizes"),
    "C2": CriterionMetadata(name="Membership", description="Selective associations requiring outstanding achievement"),
    "C3": CriterionMetadata(name="Published Material", description="About the person in professional/major media"),
    "C4": CriterionMetadata(name="Judging", description="Participation as judge of others' work"),
    "C5": CriterionMetadata(name="Original Contributions", description="Of major significance to the field"),
    "C6": CriterionMetadata(name="Scholarly Articles", description="In professional journals"),
    "C7": CriterionMetadata(name="Artistic Exhibitions", description="Display of work at artistic exhibitions"),
    "C8": CriterionMetadata(name="Leading Role", description="Leading/critical role for distinguished organizations"),
    "C9": CriterionMetadata(name="High Salary", description="Significantly above field average"),
    "C10": CriterionMetadata(name="Commercial Success", description="In performing arts"),
}

# Evidence collections each extraction unit is responsible for
CRITERION_ARRAY_KEYS: Dict[str, List[str]] = {
    "C1": ["awards"],
    "C2": ["memberships"],
    "C3": ["media_coverage"],
    "C4": ["judging_activities"],
    "C5": ["original_contributions", "patents", "grants"],
    "C6": ["publications"],
    "C7": ["exhibitions"],
    "C8": ["leadership_roles"],
    "C9": ["compensation"],
    "C10": ["commercial_success"],
}

# Prompt configuration slugs for the per-criterion extraction units
ANALYSIS_SLUGS: Dict[str, str] = {
    "C1": "ax-c1-awards",
    "C2": "ax-c2-memberships",
    "C3": "ax-c3-published-material",
    "C4": "ax-c4-judging",
    "C5": "ax-c5-contributions",
    "C6": "ax-c6-scholarly-articles",
    "C7": "ax-c7-exhibitions",
    "C8": "ax-c8-leading-role",
    "C9": "ax-c9-high-salary",
    "C10": "ax-c10-commercial-success",
}


def criterion_order(criterion_id: str) -> int:
    """Sort key placing C1..C10 in numeric order and anything else last."""
    try:
        return ALL_CRITERIA.index(criterion_id)
    except ValueError:
        return len(ALL_CRITERIA)


def is_known_criterion(criterion_id: str) -> bool:
    return criterion_id in CRITERIA_METADATA


def max_strength(current: str, proposed: str) -> str:
    """Return whichever label ranks higher; ties keep ``current``."""
    if STRENGTH_RANK.get(proposed, 0) > STRENGTH_RANK.get(current, 0):
        return proposed
    return current
