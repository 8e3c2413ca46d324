"""Repository for cases and the records hanging off them."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from petition_ai.database.models import Case, CaseProfile, Document, Recommender
from petition_ai.repositories.base_repository import BaseRepository
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


class CaseRepository(BaseRepository[Case]):
    """Cases, their profile, documents and recommenders."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Case)

    async def set_threshold(self, case_id: UUID, threshold: int) -> Optional[Case]:
        return await self.update(case_id, criteria_threshold=threshold)

    async def get_profile(self, case_id: UUID) -> Optional[CaseProfile]:
        try:
            result = await self.session.execute(
                select(CaseProfile).where(CaseProfile.case_id == case_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(f"Error loading profile for case {case_id}: {e}", exc_info=True)
            raise

    async def upsert_profile(self, case_id: UUID, data: dict) -> CaseProfile:
        """Replace the profile payload, creating the row on first write."""
        try:
            profile = await self.get_profile(case_id)
            if profile is None:
                profile = CaseProfile(case_id=case_id, data=data)
                self.session.add(profile)
            else:
                profile.data = data
            await self.session.flush()
            await self.session.commit()
            LOGGER.debug("Upserted case profile", extra={"case_id": str(case_id)})
            return profile
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error saving profile for case {case_id}: {e}", exc_info=True)
            raise

    async def list_documents(self, case_id: UUID) -> List[Document]:
        try:
            result = await self.session.execute(
                select(Document).where(Document.case_id == case_id).order_by(Document.created_at)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            LOGGER.error(f"Error listing documents for case {case_id}: {e}", exc_info=True)
            raise

    async def list_recommenders(self, case_id: UUID) -> List[Recommender]:
        try:
            result = await self.session.execute(
                select(Recommender)
                .where(Recommender.case_id == case_id)
                .order_by(Recommender.created_at)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            LOGGER.error(f"Error listing recommenders for case {case_id}: {e}", exc_info=True)
            raise

    async def count_documents(self, case_id: UUID) -> int:
        return await BaseRepository(self.session, Document).count({"case_id": case_id})

    async def count_recommenders(self, case_id: UUID) -> int:
        return await BaseRepository(self.session, Recommender).count({"case_id": case_id})
