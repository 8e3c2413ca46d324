"""Pydantic schemas for extracted evidence and the aggregate extraction document.

Item models are lenient (``extra="allow"``) so that fields the model adds
are carried through assembly rather than rejected.
"""

from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from petition_ai.schemas.criteria import CriterionId, StrengthLabel

Source = Optional[Literal["extracted", "survey"]]

MAX_KEY_EVIDENCE = 5


class ExtractedBaseModel(BaseModel):
    """Base model for all extracted entities with shared config."""
    model_config = ConfigDict(from_attributes=True, extra="allow")


class EvidenceItem(ExtractedBaseModel):
    """Fields shared by every evidence collection item."""
    id: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=list)
    source: Source = None


class Publication(EvidenceItem):
    title: str
    venue: Optional[str] = None
    venue_tier: Optional[Literal["top_tier", "high", "standard", "unknown"]] = None
    year: Optional[int] = None
    citations: Optional[int] = None
    doi: Optional[str] = None
    authors: Optional[List[str]] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C6"])


class Award(EvidenceItem):
    name: str
    issuer: Optional[str] = None
    year: Optional[int] = None
    scope: Optional[Literal["international", "national", "regional", "local", "unknown"]] = None
    description: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C1"])


class Patent(EvidenceItem):
    title: str
    number: Optional[str] = None
    status: Optional[Literal["granted", "pending", "filed", "unknown"]] = None
    year: Optional[int] = None
    inventors: Optional[List[str]] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C5"])


class Membership(EvidenceItem):
    organization: str
    role: Optional[str] = None
    selectivity_evidence: Optional[str] = None
    year_joined: Optional[int] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C2"])


class MediaCoverage(EvidenceItem):
    outlet: str
    title: Optional[str] = None
    date: Optional[str] = None
    about_the_person: bool = False
    url: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C3"])


class JudgingActivity(EvidenceItem):
    type: Literal[
        "peer_review", "grant_panel", "competition_judge",
        "thesis_committee", "editorial_board", "other",
    ]
    organization: Optional[str] = None
    venue: Optional[str] = None
    description: Optional[str] = None
    year: Optional[int] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C4"])


class SpeakingEngagement(EvidenceItem):
    event: str
    type: Optional[Literal["keynote", "invited", "panel", "workshop", "contributed", "other"]] = None
    location: Optional[str] = None
    year: Optional[int] = None
    description: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C5"])


class Grant(EvidenceItem):
    title: str
    funder: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    role: Optional[Literal["PI", "Co-PI", "Co-I", "collaborator", "other"]] = None
    year: Optional[int] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C5"])


class LeadershipRole(EvidenceItem):
    title: str
    organization: str
    distinction: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    description: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C8"])


class Compensation(EvidenceItem):
    amount: Optional[float] = None
    currency: Optional[str] = None
    period: Optional[Literal["annual", "monthly", "hourly", "total"]] = None
    context: Optional[str] = None
    comparison: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C9"])


class Exhibition(EvidenceItem):
    venue: str
    title: Optional[str] = None
    type: Optional[Literal["solo", "group", "permanent", "touring", "other"]] = None
    year: Optional[int] = None
    location: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C7"])


class CommercialSuccess(EvidenceItem):
    description: str
    metrics: Optional[str] = None
    revenue: Optional[float] = None
    currency: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C10"])


class OriginalContribution(EvidenceItem):
    description: str
    impact: Optional[str] = None
    evidence: Optional[str] = None
    mapped_criteria: List[CriterionId] = Field(default_factory=lambda: ["C5"])


class CriteriaSummaryItem(BaseModel):
    """One criterion's evidence count, strength and supporting excerpts."""
    criterion_id: CriterionId
    evidence_count: int
    strength: StrengthLabel
    summary: str
    key_evidence: List[str] = Field(default_factory=list)


class PersonalInfo(ExtractedBaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    current_title: Optional[str] = None
    current_organization: Optional[str] = None
    field: Optional[str] = None
    years_experience: Optional[float] = None
    source: Source = None


class Education(ExtractedBaseModel):
    degree: str
    field: Optional[str] = None
    institution: str
    year: Optional[int] = None
    source: Source = None


class WorkExperience(ExtractedBaseModel):
    title: str
    organization: str
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    description: Optional[str] = None
    source: Source = None


class ExtractionDocument(BaseModel):
    """Aggregate of every evidence collection plus the ten criteria summaries."""
    personal_info: Optional[PersonalInfo] = None
    education: List[Education] = Field(default_factory=list)
    work_experience: List[WorkExperience] = Field(default_factory=list)

    publications: List[Publication] = Field(default_factory=list)
    awards: List[Award] = Field(default_factory=list)
    patents: List[Patent] = Field(default_factory=list)
    memberships: List[Membership] = Field(default_factory=list)
    media_coverage: List[MediaCoverage] = Field(default_factory=list)
    judging_activities: List[JudgingActivity] = Field(default_factory=list)
    speaking_engagements: List[SpeakingEngagement] = Field(default_factory=list)
    grants: List[Grant] = Field(default_factory=list)
    leadership_roles: List[LeadershipRole] = Field(default_factory=list)
    compensation: List[Compensation] = Field(default_factory=list)
    exhibitions: List[Exhibition] = Field(default_factory=list)
    commercial_success: List[CommercialSuccess] = Field(default_factory=list)
    original_contributions: List[OriginalContribution] = Field(default_factory=list)

    criteria_summary: List[CriteriaSummaryItem] = Field(default_factory=list)
    extracted_text: Optional[str] = None

    def summary_for(self, criterion_id: str) -> Optional[CriteriaSummaryItem]:
        for item in self.criteria_summary:
            if item.criterion_id == criterion_id:
                return item
        return None


# Per-criterion unit outputs: the unit's evidence arrays plus one summary


class C1Extraction(BaseModel):
    awards: List[Award] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C2Extraction(BaseModel):
    memberships: List[Membership] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C3Extraction(BaseModel):
    media_coverage: List[MediaCoverage] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C4Extraction(BaseModel):
    judging_activities: List[JudgingActivity] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C5Extraction(BaseModel):
    original_contributions: List[OriginalContribution] = Field(default_factory=list)
    patents: List[Patent] = Field(default_factory=list)
    grants: List[Grant] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C6Extraction(BaseModel):
    publications: List[Publication] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C7Extraction(BaseModel):
    exhibitions: List[Exhibition] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C8Extraction(BaseModel):
    leadership_roles: List[LeadershipRole] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C9Extraction(BaseModel):
    compensation: List[Compensation] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


class C10Extraction(BaseModel):
    commercial_success: List[CommercialSuccess] = Field(default_factory=list)
    criteria_summary: CriteriaSummaryItem


CRITERION_SCHEMAS: Dict[str, Type[BaseModel]] = {
    "C1": C1Extraction,
    "C2": C2Extraction,
    "C3": C3Extraction,
    "C4": C4Extraction,
    "C5": C5Extraction,
    "C6": C6Extraction,
    "C7": C7Extraction,
    "C8": C8Extraction,
    "C9": C9Extraction,
    "C10": C10Extraction,
}


class UnitOutcome(BaseModel):
    """Tagged result of one fan-out extraction unit."""
    criterion_id: str
    success: bool
    data: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
