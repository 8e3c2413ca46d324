"""``CaseStore`` backed by the SQLAlchemy repositories."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from petition_ai.core.config import settings
from petition_ai.core.exceptions import CaseNotFoundError
from petition_ai.database.models import AnalysisVersionRecord, EvidenceVerification
from petition_ai.repositories.analysis_version_repository import AnalysisVersionRepository
from petition_ai.repositories.case_repository import CaseRepository
from petition_ai.repositories.extraction_repository import ExtractionRepository
from petition_ai.repositories.stage_output_repository import StageOutputRepository
from petition_ai.repositories.verification_repository import VerificationRepository
from petition_ai.schemas.analysis import AnalysisVersion, CriterionResult
from petition_ai.schemas.case import CaseContext, DocumentInfo, RecommenderInfo
from petition_ai.schemas.extraction import ExtractionDocument
from petition_ai.schemas.stages import EvidenceInventory
from petition_ai.schemas.verification import VerificationRecord
from petition_ai.services.store.base import CaseStore, count_criteria_with_evidence
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _to_version(record: AnalysisVersionRecord) -> AnalysisVersion:
    return AnalysisVersion(
        case_id=str(record.case_id),
        version=record.version,
        criteria=[CriterionResult.model_validate(c) for c in record.criteria],
        strong_count=record.strong_count,
        weak_count=record.weak_count,
        created_at=record.created_at,
    )


def _to_verification(record: EvidenceVerification) -> VerificationRecord:
    return VerificationRecord(
        case_id=str(record.case_id),
        document_id=str(record.document_id),
        criterion=record.criterion,
        version=record.version,
        score=record.score,
        recommendation=record.recommendation,
        data=record.data,
        document_name=record.document.name if record.document else None,
        created_at=record.created_at,
    )


class SqlCaseStore(CaseStore):
    """One store per ``AsyncSession``; repositories commit per write."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.cases = CaseRepository(session)
        self.extractions = ExtractionRepository(session)
        self.versions = AnalysisVersionRepository(session)
        self.stage_outputs = StageOutputRepository(session)
        self.verifications = VerificationRepository(session)

    async def get_latest_extraction(self, case_id: str) -> Optional[ExtractionDocument]:
        record = await self.extractions.get_latest(UUID(case_id))
        return ExtractionDocument.model_validate(record.data) if record else None

    async def put_extraction(
        self,
        case_id: str,
        extraction: ExtractionDocument,
        failed_criteria: Optional[List[str]] = None,
    ) -> None:
        await self.extractions.create_extraction(
            UUID(case_id), extraction.model_dump(mode="json"), failed_criteria
        )

    async def get_latest_version(self, case_id: str) -> Optional[AnalysisVersion]:
        record = await self.versions.get_latest(UUID(case_id))
        return _to_version(record) if record else None

    async def append_version(self, version: AnalysisVersion) -> AnalysisVersion:
        record = await self.versions.insert_version(
            case_id=UUID(version.case_id),
            version=version.version,
            criteria=[c.model_dump(mode="json") for c in version.criteria],
            strong_count=version.strong_count,
            weak_count=version.weak_count,
        )
        return _to_version(record)

    async def list_versions(self, case_id: str) -> List[AnalysisVersion]:
        return [_to_version(r) for r in await self.versions.list_versions(UUID(case_id))]

    async def get_latest_stage_output(self, case_id: str, stage_name: str) -> Optional[Dict[str, Any]]:
        record = await self.stage_outputs.get_latest(UUID(case_id), stage_name)
        return record.data if record else None

    async def append_stage_output(self, case_id: str, stage_name: str, data: Dict[str, Any]) -> None:
        await self.stage_outputs.create_output(UUID(case_id), stage_name, data)

    async def list_verifications(self, document_id: str) -> List[VerificationRecord]:
        return [_to_verification(r) for r in await self.verifications.list_for_document(UUID(document_id))]

    async def list_case_verifications(self, case_id: str) -> List[VerificationRecord]:
        return [_to_verification(r) for r in await self.verifications.list_for_case(UUID(case_id))]

    async def get_latest_verification_version(self, document_id: str) -> int:
        return await self.verifications.get_latest_version(UUID(document_id)) or 0

    async def append_verification(self, record: VerificationRecord) -> None:
        await self.verifications.create(
            case_id=UUID(record.case_id),
            document_id=UUID(record.document_id),
            criterion=record.criterion,
            version=record.version,
            score=record.score,
            recommendation=record.recommendation,
            data=record.data,
        )

    async def get_profile(self, case_id: str) -> Dict[str, Any]:
        profile = await self.cases.get_profile(UUID(case_id))
        return dict(profile.data or {}) if profile else {}

    async def put_profile(self, case_id: str, data: Dict[str, Any]) -> None:
        await self.cases.upsert_profile(UUID(case_id), data)

    async def get_document(self, case_id: str, document_id: str) -> Optional[DocumentInfo]:
        for document in await self.cases.list_documents(UUID(case_id)):
            if str(document.id) == document_id:
                return DocumentInfo(
                    id=str(document.id),
                    name=document.name,
                    type=document.type,
                    source=document.source,
                    status=document.status,
                    content=document.content,
                )
        return None

    async def get_inventory(self, case_id: str) -> EvidenceInventory:
        key = UUID(case_id)
        extraction = await self.get_latest_extraction(case_id)
        return EvidenceInventory(
            document_count=await self.cases.count_documents(key),
            recommender_count=await self.cases.count_recommenders(key),
            has_profile=bool(await self.get_profile(case_id)),
            has_extraction=extraction is not None,
            criteria_with_evidence=count_criteria_with_evidence(extraction),
        )

    async def get_case_context(self, case_id: str) -> CaseContext:
        key = UUID(case_id)
        if await self.cases.get_by_id(key) is None:
            raise CaseNotFoundError(f"Case not found: {case_id}")

        documents = [
            DocumentInfo(
                id=str(d.id), name=d.name, type=d.type, source=d.source,
                status=d.status, content=d.content,
            )
            for d in await self.cases.list_documents(key)
        ]
        recommenders = [
            RecommenderInfo(
                id=str(r.id), name=r.name, title=r.title, organization=r.organization,
                relationship_type=r.relationship_type,
                relationship_context=r.relationship_context,
                credentials=r.credentials, bio=r.bio, duration_years=r.duration_years,
            )
            for r in await self.cases.list_recommenders(key)
        ]
        verifications = await self.list_case_verifications(case_id)

        LOGGER.debug(
            "Loaded case context",
            extra={"case_id": case_id, "documents": len(documents), "recommenders": len(recommenders)},
        )
        return CaseContext(
            case_id=case_id,
            profile=await self.get_profile(case_id),
            documents=documents,
            recommenders=recommenders,
            latest_verification=verifications[0] if verifications else None,
        )

    async def get_criteria_threshold(self, case_id: str) -> int:
        case = await self.cases.get_by_id(UUID(case_id))
        if case is None or case.criteria_threshold is None:
            return settings.default_criteria_threshold
        return case.criteria_threshold

    async def set_criteria_threshold(self, case_id: str, threshold: int) -> None:
        if await self.cases.set_threshold(UUID(case_id), threshold) is None:
            raise CaseNotFoundError(f"Case not found: {case_id}")
