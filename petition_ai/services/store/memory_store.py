"""Dictionary-backed ``CaseStore``."""

import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from petition_ai.core.config import settings
from petition_ai.core.exceptions import CaseNotFoundError, VersionConflictError
from petition_ai.schemas.analysis import AnalysisVersion
from petition_ai.schemas.case import CaseContext, DocumentInfo, RecommenderInfo
from petition_ai.schemas.extraction import ExtractionDocument
from petition_ai.schemas.stages import EvidenceInventory
from petition_ai.schemas.verification import VerificationRecord
from petition_ai.services.store.base import CaseStore, count_criteria_with_evidence


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryCaseStore(CaseStore):
    """Keeps every record in process memory. Lost on exit."""

    def __init__(self):
        self._thresholds: Dict[str, int] = {}
        self._profiles: Dict[str, Dict[str, Any]] = {}
        self._documents: Dict[str, List[DocumentInfo]] = defaultdict(list)
        self._recommenders: Dict[str, List[RecommenderInfo]] = defaultdict(list)
        self._extractions: Dict[str, List[ExtractionDocument]] = defaultdict(list)
        self._failed_criteria: Dict[str, List[List[str]]] = defaultdict(list)
        self._versions: Dict[str, List[AnalysisVersion]] = defaultdict(list)
        self._stage_outputs: Dict[tuple, List[Dict[str, Any]]] = defaultdict(list)
        self._verifications: List[VerificationRecord] = []

    # Seeding helpers

    def create_case(self, case_id: Optional[str] = None, criteria_threshold: Optional[int] = None) -> str:
        case_id = case_id or str(uuid.uuid4())
        self._thresholds[case_id] = criteria_threshold or settings.default_criteria_threshold
        return case_id

    def add_document(self, case_id: str, name: str, content: Optional[str] = None, **fields) -> DocumentInfo:
        document = DocumentInfo(id=fields.pop("id", None) or str(uuid.uuid4()), name=name, content=content, **fields)
        self._documents[case_id].append(document)
        return document

    def add_recommender(self, case_id: str, name: str, **fields) -> RecommenderInfo:
        recommender = RecommenderInfo(id=fields.pop("id", None) or str(uuid.uuid4()), name=name, **fields)
        self._recommenders[case_id].append(recommender)
        return recommender

    # Extraction runs

    async def get_latest_extraction(self, case_id: str) -> Optional[ExtractionDocument]:
        runs = self._extractions.get(case_id)
        return runs[-1].model_copy(deep=True) if runs else None

    async def put_extraction(
        self,
        case_id: str,
        extraction: ExtractionDocument,
        failed_criteria: Optional[List[str]] = None,
    ) -> None:
        self._extractions[case_id].append(extraction.model_copy(deep=True))
        self._failed_criteria[case_id].append(list(failed_criteria or []))

    # Analysis versions

    async def get_latest_version(self, case_id: str) -> Optional[AnalysisVersion]:
        versions = self._versions.get(case_id)
        return versions[-1].model_copy(deep=True) if versions else None

    async def append_version(self, version: AnalysisVersion) -> AnalysisVersion:
        existing = self._versions[version.case_id]
        if any(v.version == version.version for v in existing):
            raise VersionConflictError(
                f"Version {version.version} already exists for case {version.case_id}"
            )
        stored = version.model_copy(deep=True, update={"created_at": version.created_at or _now()})
        existing.append(stored)
        existing.sort(key=lambda v: v.version)
        return stored.model_copy(deep=True)

    async def list_versions(self, case_id: str) -> List[AnalysisVersion]:
        return [v.model_copy(deep=True) for v in self._versions.get(case_id, [])]

    # Stage outputs

    async def get_latest_stage_output(self, case_id: str, stage_name: str) -> Optional[Dict[str, Any]]:
        outputs = self._stage_outputs.get((case_id, stage_name))
        return dict(outputs[-1]) if outputs else None

    async def append_stage_output(self, case_id: str, stage_name: str, data: Dict[str, Any]) -> None:
        self._stage_outputs[(case_id, stage_name)].append(dict(data))

    def stage_output_count(self, case_id: str, stage_name: str) -> int:
        return len(self._stage_outputs.get((case_id, stage_name), []))

    # Evidence verification

    async def list_verifications(self, document_id: str) -> List[VerificationRecord]:
        records = [r for r in self._verifications if r.document_id == document_id]
        return sorted(records, key=lambda r: (-r.version, r.criterion))

    async def list_case_verifications(self, case_id: str) -> List[VerificationRecord]:
        records = [r for r in self._verifications if r.case_id == case_id]
        return list(reversed(records))

    async def get_latest_verification_version(self, document_id: str) -> int:
        versions = [r.version for r in self._verifications if r.document_id == document_id]
        return max(versions, default=0)

    async def append_verification(self, record: VerificationRecord) -> None:
        self._verifications.append(
            record.model_copy(update={"created_at": record.created_at or _now()})
        )

    # Profile, inventory and context

    async def get_profile(self, case_id: str) -> Dict[str, Any]:
        return dict(self._profiles.get(case_id, {}))

    async def put_profile(self, case_id: str, data: Dict[str, Any]) -> None:
        self._profiles[case_id] = dict(data)

    async def get_document(self, case_id: str, document_id: str) -> Optional[DocumentInfo]:
        for document in self._documents.get(case_id, []):
            if document.id == document_id:
                return document
        return None

    async def get_inventory(self, case_id: str) -> EvidenceInventory:
        extraction = await self.get_latest_extraction(case_id)
        return EvidenceInventory(
            document_count=len(self._documents.get(case_id, [])),
            recommender_count=len(self._recommenders.get(case_id, [])),
            has_profile=bool(self._profiles.get(case_id)),
            has_extraction=extraction is not None,
            criteria_with_evidence=count_criteria_with_evidence(extraction),
        )

    async def get_case_context(self, case_id: str) -> CaseContext:
        if case_id not in self._thresholds:
            raise CaseNotFoundError(f"Case not found: {case_id}")
        verifications = await self.list_case_verifications(case_id)
        return CaseContext(
            case_id=case_id,
            profile=await self.get_profile(case_id),
            documents=list(self._documents.get(case_id, [])),
            recommenders=list(self._recommenders.get(case_id, [])),
            latest_verification=verifications[0] if verifications else None,
        )

    # Threshold

    async def get_criteria_threshold(self, case_id: str) -> int:
        return self._thresholds.get(case_id, settings.default_criteria_threshold)

    async def set_criteria_threshold(self, case_id: str, threshold: int) -> None:
        self._thresholds[case_id] = threshold
