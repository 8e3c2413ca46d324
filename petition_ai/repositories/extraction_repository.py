"""Repository for extraction runs."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from petition_ai.database.models import CaseExtraction
from petition_ai.repositories.base_repository import BaseRepository
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ExtractionRepository(BaseRepository[CaseExtraction]):

    def __init__(self, session: AsyncSession):
        super().__init__(session, CaseExtraction)

    async def create_extraction(
        self,
        case_id: UUID,
        data: Dict[str, Any],
        failed_criteria: Optional[List[str]] = None,
    ) -> CaseExtraction:
        extraction = await self.create(
            case_id=case_id, data=data, failed_criteria=list(failed_criteria or [])
        )
        LOGGER.debug(
            "Created case extraction",
            extra={"case_id": str(case_id), "extraction_id": str(extraction.id)},
        )
        return extraction

    async def get_latest(self, case_id: UUID) -> Optional[CaseExtraction]:
        query = (
            select(CaseExtraction)
            .where(CaseExtraction.case_id == case_id)
            .order_by(CaseExtraction.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
