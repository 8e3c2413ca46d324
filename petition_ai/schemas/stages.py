"""Output schemas for the downstream analysis cascade.

Each stage model pins the fields downstream code relies on and accepts
any additional structure the model emits (``extra="allow"``); the full
rubric shape is prompt configuration.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class StageBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")


# Strength evaluation


class CriterionEvaluation(StageBaseModel):
    tier: int
    score: float
    satisfied: bool
    evidence_count: int
    rfe_risk: Literal["LOW", "MODERATE", "HIGH", "VERY_HIGH", "N_A"]
    key_evidence: List[str] = Field(default_factory=list)
    scoring_rationale: str = ""
    improvement_notes: str = ""


class Step1Assessment(StageBaseModel):
    criteria_satisfied_count: int
    criteria_satisfied_list: List[str] = Field(default_factory=list)
    criteria_borderline_count: int = 0
    criteria_borderline_list: List[str] = Field(default_factory=list)
    step1_result: Literal["SATISFIED", "BORDERLINE", "NOT_SATISFIED"]


class StrengthOverallAssessment(StageBaseModel):
    petition_strength: Literal["EXCELLENT", "STRONG", "MODERATE", "WEAK", "VERY_WEAK"]
    overall_score: float
    recommendation: Literal["FILE_NOW", "STRENGTHEN_FIRST", "BUILD_EVIDENCE", "CONSIDER_ALTERNATIVE"]
    top_3_strengths: List[str] = Field(default_factory=list)
    top_3_weaknesses: List[str] = Field(default_factory=list)


class StrengthEvaluation(StageBaseModel):
    applicant_name: str
    detected_field: Literal["STEM", "HEALTHCARE", "BUSINESS", "ARTS", "ATHLETICS", "ACADEMIA"]
    criteria_evaluations: Dict[str, CriterionEvaluation]
    step1_assessment: Step1Assessment
    overall_assessment: StrengthOverallAssessment


# Gap analysis


class CriticalGap(StageBaseModel):
    priority: Literal["HIGH", "MEDIUM", "LOW"]
    criterion: str
    issue: str
    actions: List[Dict[str, Any]] = Field(default_factory=list)


class GapExecutiveSummary(StageBaseModel):
    overall_case_strength: Literal["STRONG", "MODERATE", "WEAK", "NOT_READY"]
    criteria_satisfied_count: int
    total_gaps_identified: int


class FilingDecision(StageBaseModel):
    recommendation: Literal["FILE_NOW", "WAIT_3_MONTHS", "WAIT_6_MONTHS", "WAIT_12_MONTHS", "CONSIDER_ALTERNATIVE"]
    rationale: str


class GapAnalysisBody(StageBaseModel):
    applicant_name: str
    executive_summary: GapExecutiveSummary
    critical_gaps: List[CriticalGap] = Field(default_factory=list)
    filing_decision: FilingDecision


class GapAnalysis(StageBaseModel):
    gap_analysis: GapAnalysisBody


# Case strategy


class RecommendedCriterion(StageBaseModel):
    criterion: str
    strength_assessment: str
    effort_level: Literal["LOW", "MEDIUM", "HIGH"]
    key_actions: List[str] = Field(default_factory=list)


class CriterionToAvoid(StageBaseModel):
    criterion: str
    reason: str


class CaseStrategyBody(StageBaseModel):
    strategy_summary: str
    recommended_criteria: List[RecommendedCriterion] = Field(default_factory=list)
    criteria_to_avoid: List[CriterionToAvoid] = Field(default_factory=list)


class CaseStrategy(StageBaseModel):
    case_strategy: CaseStrategyBody


# Case consolidation


class CandidateProfile(StageBaseModel):
    name: str
    field_of_expertise: str
    current_position: str


class CriterionRanking(StageBaseModel):
    criterion: str
    rank: int


class ConsolidationRiskAssessment(StageBaseModel):
    overall_risk_level: Literal["LOW", "MODERATE", "HIGH", "VERY_HIGH"]
    overall_risk_rationale: str


class CaseConsolidationBody(StageBaseModel):
    candidate_profile: CandidateProfile
    criteria_ranking: List[CriterionRanking] = Field(default_factory=list)
    risk_assessment: ConsolidationRiskAssessment


class CaseConsolidation(StageBaseModel):
    case_consolidation: CaseConsolidationBody


# Risk probability, pass 1 (qualitative)

FlagLevel = Literal["HIGH", "MEDIUM", "LOW"]
MeritsStrength = Literal["STRONG", "MODERATE", "WEAK"]


class KazarianStep1(StageBaseModel):
    status: str
    criteria_claimed: int
    criteria_likely_satisfied: int
    critical_threshold_met: bool


class KazarianStep2(StageBaseModel):
    status: str
    sustained_acclaim: MeritsStrength
    top_of_field: MeritsStrength
    geographic_scope: str
    timeline_coverage: str
    risk_score: float


class KazarianAnalysis(StageBaseModel):
    step1: KazarianStep1
    step2: KazarianStep2


class FieldContext(StageBaseModel):
    field: str
    baseline_approval_rate: float
    case_vs_typical: Literal["ABOVE", "AT", "BELOW"]
    benchmarks: Dict[str, Any] = Field(default_factory=dict)
    profile_comparison: Dict[str, Any] = Field(default_factory=dict)


class CriterionRiskAssessment(StageBaseModel):
    criterion_key: str
    criterion_name: str
    classification: Literal["PRIMARY", "SECONDARY", "WEAK"]
    evidence_strength: float
    documentation_status: Literal["COMPLETE", "PARTIAL", "INSUFFICIENT"]
    rfe_risk: float
    denial_risk: float
    issues: List[str] = Field(default_factory=list)


class LetterAnalysis(StageBaseModel):
    total_letters: int
    independent_count: int
    independent_pct: float
    collaborative_count: int
    geographic_diversity: str
    portfolio_risk: Literal["LOW", "MEDIUM", "HIGH"]
    issues: List[str] = Field(default_factory=list)


class RedFlag(BaseModel):
    level: FlagLevel
    description: str


class RiskPass1(StageBaseModel):
    kazarian_analysis: KazarianAnalysis
    field_context: FieldContext
    criterion_risk_assessments: List[CriterionRiskAssessment] = Field(default_factory=list)
    letter_analysis: LetterAnalysis
    red_flags: List[RedFlag] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)


# Risk probability, pass 2 (quantitative)

RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "VERY_HIGH"]
FilingRecommendation = Literal[
    "FILE_NOW", "FILE_WITH_CAUTION", "STRENGTHEN_FIRST", "MAJOR_GAPS", "CONSIDER_ALTERNATIVE"
]


class Adjustment(BaseModel):
    factor: str
    delta_pct: int = Field(description="Signed whole percentage points; positive increases denial")


class ProbabilityBreakdown(BaseModel):
    base_denial_rate: int = Field(description="Whole integer percentage 0-100")
    adjustments: List[Adjustment] = Field(default_factory=list)
    final_denial_probability: int = Field(description="Whole integer percentage 5-95")


class RiskOverallAssessment(BaseModel):
    risk_level: RiskLevel
    denial_probability_pct: int = Field(description="Must equal final_denial_probability")
    rfe_probability_pct: int = Field(description="1.5x denial, capped at 90")
    confidence: Literal["HIGH", "MEDIUM", "LOW"]
    summary: str


class Recommendation(BaseModel):
    action: str
    guidance: str


class Recommendations(BaseModel):
    critical: List[Recommendation] = Field(default_factory=list)
    high_priority: List[Recommendation] = Field(default_factory=list)
    moderate_priority: List[Recommendation] = Field(default_factory=list)


class FilingRecommendationResult(BaseModel):
    recommendation: FilingRecommendation
    rationale: str


class RiskPass2(BaseModel):
    """Quantitative pass output.

    Bounds are not enforced at parse time; the risk stage recomputes the
    derived fields so the stored result is always consistent.
    """
    probability_breakdown: ProbabilityBreakdown
    overall_assessment: RiskOverallAssessment
    recommendations: Recommendations
    filing_recommendation: FilingRecommendationResult


class EvidenceInventory(BaseModel):
    """Counts and presence flags consumed read-only by the risk stage."""
    document_count: int = 0
    recommender_count: int = 0
    has_profile: bool = False
    has_extraction: bool = False
    criteria_with_evidence: Optional[int] = None

    @property
    def missing_items(self) -> List[str]:
        """Inventory gaps that must surface as HIGH red flags."""
        missing = []
        if self.document_count == 0:
            missing.append("No documents uploaded")
        if self.recommender_count == 0:
            missing.append("No recommenders on file")
        if not self.has_extraction:
            missing.append("No EB-1A analysis/extraction exists")
        return missing

    @property
    def is_empty(self) -> bool:
        """Nothing at all on file, so no strength can be evidenced."""
        return (
            self.document_count == 0
            and self.recommender_count == 0
            and not self.has_extraction
            and not self.has_profile
        )

    def to_text(self) -> str:
        return (
            "=== EVIDENCE INVENTORY ===\n"
            f"Documents: {self.document_count}\n"
            f"Recommenders: {self.recommender_count}\n"
            f"Profile: {'present' if self.has_profile else 'empty'}\n"
            f"EB-1A Analysis: {'present' if self.has_extraction else 'none'}"
        )
