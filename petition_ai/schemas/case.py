"""Read models for case records consumed by context building."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from petition_ai.schemas.verification import VerificationRecord


class DocumentInfo(BaseModel):
    id: str
    name: str
    type: Optional[str] = None
    source: Optional[str] = None
    status: str = "uploaded"
    content: Optional[str] = None


class RecommenderInfo(BaseModel):
    id: str
    name: str
    title: Optional[str] = None
    organization: Optional[str] = None
    relationship_type: Optional[str] = None
    relationship_context: Optional[str] = None
    credentials: Optional[str] = None
    bio: Optional[str] = None
    duration_years: Optional[float] = None


class CaseContext(BaseModel):
    """Everything the base evaluation context is rendered from."""
    case_id: str
    profile: Dict[str, Any] = Field(default_factory=dict)
    documents: List[DocumentInfo] = Field(default_factory=list)
    recommenders: List[RecommenderInfo] = Field(default_factory=list)
    latest_verification: Optional[VerificationRecord] = None
