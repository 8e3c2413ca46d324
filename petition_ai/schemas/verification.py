"""Schemas for per-document evidence verification."""

from datetime import datetime
from typing import Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

VerificationRecommendation = Literal["STRONG", "INCLUDE_WITH_SUPPORT", "NEEDS_MORE_DOCS", "EXCLUDE"]

VERIFIED_CRITERIA = ("C1", "C2", "C3", "C4", "C5")


class BaseVerification(BaseModel):
    model_config = ConfigDict(extra="allow")

    criterion: str
    document_type: str
    evidence_tier: int = Field(ge=1, le=5)
    score: float = Field(ge=0, le=10)
    verified_claims: List[str] = Field(default_factory=list)
    unverified_claims: List[str] = Field(default_factory=list)
    missing_documentation: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    recommendation: VerificationRecommendation
    reasoning: str
    matched_item_ids: List[str] = Field(default_factory=list)


class ThreePartTest(BaseModel):
    outstanding_achievement_required: bool
    expert_judgment_documented: bool
    distinct_from_employment: bool


class AboutTest(BaseModel):
    primarily_about_petitioner: bool
    major_media_or_trade_pub: bool
    title_date_author_present: bool
    independent_editorial: bool


class JudgingTest(BaseModel):
    actual_participation_proven: bool
    peers_not_students: bool
    venue_prestige_documented: bool
    sustained_pattern: bool


class SignificanceIndicators(BaseModel):
    widespread_adoption: bool
    commercial_validation: bool
    research_impact: bool
    independent_adoption: bool
    expert_validation: bool
    field_transformation: bool
    indicators_met: int


class C1Verification(BaseVerification):
    pass


class C2Verification(BaseVerification):
    three_part_test: ThreePartTest


class C3Verification(BaseVerification):
    about_test: AboutTest


class C4Verification(BaseVerification):
    judging_test: JudgingTest


class C5Verification(BaseVerification):
    significance_indicators: SignificanceIndicators


VERIFICATION_SCHEMAS: Dict[str, Type[BaseVerification]] = {
    "C1": C1Verification,
    "C2": C2Verification,
    "C3": C3Verification,
    "C4": C4Verification,
    "C5": C5Verification,
}


class VerificationRecord(BaseModel):
    """Stored outcome for one (document, criterion, version)."""
    case_id: str
    document_id: str
    criterion: str
    version: int
    score: float
    recommendation: str
    data: dict
    document_name: Optional[str] = None
    created_at: Optional[datetime] = None


class CriterionVerificationResult(BaseModel):
    success: bool
    data: Optional[dict] = None
    error: Optional[str] = None


class DocumentVerificationResults(BaseModel):
    document_id: str
    version: int
    results: Dict[str, CriterionVerificationResult] = Field(default_factory=dict)
