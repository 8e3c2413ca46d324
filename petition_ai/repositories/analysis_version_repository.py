"""Repository for append-only analysis versions."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from petition_ai.core.exceptions import VersionConflictError
from petition_ai.database.models import AnalysisVersionRecord
from petition_ai.repositories.base_repository import BaseRepository
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AnalysisVersionRepository(BaseRepository[AnalysisVersionRecord]):
    """Versions are only ever inserted; ``(case_id, version)`` is unique."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, AnalysisVersionRecord)

    async def get_latest(self, case_id: UUID) -> Optional[AnalysisVersionRecord]:
        query = (
            select(AnalysisVersionRecord)
            .where(AnalysisVersionRecord.case_id == case_id)
            .order_by(AnalysisVersionRecord.version.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_versions(self, case_id: UUID) -> List[AnalysisVersionRecord]:
        query = (
            select(AnalysisVersionRecord)
            .where(AnalysisVersionRecord.case_id == case_id)
            .order_by(AnalysisVersionRecord.version)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def insert_version(
        self,
        case_id: UUID,
        version: int,
        criteria: List[Dict[str, Any]],
        strong_count: int,
        weak_count: int,
    ) -> AnalysisVersionRecord:
        """Insert a version row.

        Raises:
            VersionConflictError: Another writer already created this version
        """
        try:
            record = await self.create(
                case_id=case_id,
                version=version,
                criteria=criteria,
                strong_count=strong_count,
                weak_count=weak_count,
            )
        except IntegrityError as e:
            LOGGER.warning(
                "Analysis version already exists",
                extra={"case_id": str(case_id), "version": version},
            )
            raise VersionConflictError(
                f"Version {version} already exists for case {case_id}", e
            ) from e
        return record
