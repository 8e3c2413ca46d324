"""Persistent-store interface for case records.

Two implementations exist: ``SqlCaseStore`` over SQLAlchemy repositories
and ``InMemoryCaseStore`` for local runs and tests. Case ids are passed as
strings at this boundary.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from petition_ai.schemas.analysis import AnalysisVersion
from petition_ai.schemas.case import CaseContext, DocumentInfo
from petition_ai.schemas.extraction import ExtractionDocument
from petition_ai.schemas.stages import EvidenceInventory
from petition_ai.schemas.verification import VerificationRecord


def count_criteria_with_evidence(extraction: Optional[ExtractionDocument]) -> Optional[int]:
    """Number of criteria whose summary reports any evidence."""
    if extraction is None:
        return None
    return sum(
        1 for item in extraction.criteria_summary
        if item.evidence_count > 0 or item.strength != "None"
    )


class CaseStore(ABC):

    # Extraction runs

    @abstractmethod
    async def get_latest_extraction(self, case_id: str) -> Optional[ExtractionDocument]:
        """Most recent extraction for the case, or None."""

    @abstractmethod
    async def put_extraction(
        self,
        case_id: str,
        extraction: ExtractionDocument,
        failed_criteria: Optional[List[str]] = None,
    ) -> None:
        """Store a new extraction run; it supersedes earlier runs."""

    # Analysis versions

    @abstractmethod
    async def get_latest_version(self, case_id: str) -> Optional[AnalysisVersion]:
        """Highest-numbered analysis version, or None."""

    @abstractmethod
    async def append_version(self, version: AnalysisVersion) -> AnalysisVersion:
        """Insert a version.

        Raises:
            VersionConflictError: The version number already exists for the case
        """

    @abstractmethod
    async def list_versions(self, case_id: str) -> List[AnalysisVersion]:
        """All versions in ascending order."""

    # Stage outputs

    @abstractmethod
    async def get_latest_stage_output(self, case_id: str, stage_name: str) -> Optional[Dict[str, Any]]:
        """Most recent output of one stage, or None."""

    @abstractmethod
    async def append_stage_output(self, case_id: str, stage_name: str, data: Dict[str, Any]) -> None:
        """Record one stage run; earlier runs stay for audit."""

    # Evidence verification

    @abstractmethod
    async def list_verifications(self, document_id: str) -> List[VerificationRecord]:
        """All verification records for a document, newest version first."""

    @abstractmethod
    async def list_case_verifications(self, case_id: str) -> List[VerificationRecord]:
        """All verification records for a case, newest first."""

    @abstractmethod
    async def get_latest_verification_version(self, document_id: str) -> int:
        """Highest verification version for the document, 0 if none."""

    @abstractmethod
    async def append_verification(self, record: VerificationRecord) -> None:
        """Store one (document, criterion, version) record."""

    # Profile, inventory and context

    @abstractmethod
    async def get_profile(self, case_id: str) -> Dict[str, Any]:
        """Profile payload, empty when none was stored."""

    @abstractmethod
    async def put_profile(self, case_id: str, data: Dict[str, Any]) -> None:
        """Replace the profile payload."""

    @abstractmethod
    async def get_document(self, case_id: str, document_id: str) -> Optional[DocumentInfo]:
        """One document of the case, or None."""

    @abstractmethod
    async def get_inventory(self, case_id: str) -> EvidenceInventory:
        """Document/recommender counts and profile/extraction presence."""

    @abstractmethod
    async def get_case_context(self, case_id: str) -> CaseContext:
        """Profile, documents, recommenders and latest verification.

        Raises:
            CaseNotFoundError: The case does not exist
        """

    # Threshold

    @abstractmethod
    async def get_criteria_threshold(self, case_id: str) -> int:
        """Strong criteria needed for a viable case."""

    @abstractmethod
    async def set_criteria_threshold(self, case_id: str, threshold: int) -> None:
        """Persist a new threshold (already validated by the caller)."""
