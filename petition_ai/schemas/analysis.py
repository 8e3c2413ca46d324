"""Schemas for versioned criteria analysis."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from petition_ai.schemas.criteria import StrengthLabel


class CriterionResult(BaseModel):
    """Current assessment of one criterion inside an analysis version."""
    criterion_id: str = Field(description="ID of the criterion being evaluated")
    strength: StrengthLabel = Field(
        description="Strong (clear evidence), Weak (some evidence), None (no evidence)"
    )
    reason: str = Field(description="Brief explanation of the evaluation")
    evidence: List[str] = Field(
        default_factory=list, description="Direct quotes supporting this evaluation"
    )


class CriterionUpdate(BaseModel):
    """An externally proposed change to one criterion."""
    criterion_id: str
    strength: StrengthLabel
    reason: str
    evidence: List[str] = Field(default_factory=list)


class AnalysisVersion(BaseModel):
    """Immutable numbered snapshot of a case's criteria results."""
    case_id: str
    version: int
    criteria: List[CriterionResult]
    strong_count: int = 0
    weak_count: int = 0
    created_at: Optional[datetime] = None

    def get(self, criterion_id: str) -> Optional[CriterionResult]:
        for result in self.criteria:
            if result.criterion_id == criterion_id:
                return result
        return None


class AnalysisSummary(BaseModel):
    """Derived view of a version against the case threshold."""
    case_id: str
    version: int
    strong_count: int
    weak_count: int
    none_count: int
    criteria_satisfied_count: int
    criteria_threshold: int
    threshold_met: bool


class AffectedCriteria(BaseModel):
    """Relevance pass output: criteria the new evidence may strengthen."""
    affected_criterion_ids: List[str] = Field(
        default_factory=list,
        description="IDs of criteria that may be affected by the new evidence",
    )


class PartialEvaluation(BaseModel):
    """Re-evaluation of a subset of criteria."""
    criteria: List[CriterionResult] = Field(default_factory=list)
