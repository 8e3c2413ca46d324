"""Repository for evidence verification records."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from petition_ai.database.models import EvidenceVerification
from petition_ai.repositories.base_repository import BaseRepository


class VerificationRepository(BaseRepository[EvidenceVerification]):

    def __init__(self, session: AsyncSession):
        super().__init__(session, EvidenceVerification)

    async def list_for_document(self, document_id: UUID) -> List[EvidenceVerification]:
        query = (
            select(EvidenceVerification)
            .options(selectinload(EvidenceVerification.document))
            .where(EvidenceVerification.document_id == document_id)
            .order_by(EvidenceVerification.version.desc(), EvidenceVerification.criterion)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_case(self, case_id: UUID) -> List[EvidenceVerification]:
        query = (
            select(EvidenceVerification)
            .options(selectinload(EvidenceVerification.document))
            .where(EvidenceVerification.case_id == case_id)
            .order_by(EvidenceVerification.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_latest_version(self, document_id: UUID) -> Optional[int]:
        query = select(func.max(EvidenceVerification.version)).where(
            EvidenceVerification.document_id == document_id
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
