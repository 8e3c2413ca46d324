"""Repository for cascade stage outputs."""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from petition_ai.database.models import StageOutput
from petition_ai.repositories.base_repository import BaseRepository


class StageOutputRepository(BaseRepository[StageOutput]):

    def __init__(self, session: AsyncSession):
        super().__init__(session, StageOutput)

    async def create_output(self, case_id: UUID, stage_name: str, data: Dict[str, Any]) -> StageOutput:
        return await self.create(case_id=case_id, stage_name=stage_name, data=data)

    async def get_latest(self, case_id: UUID, stage_name: str) -> Optional[StageOutput]:
        query = (
            select(StageOutput)
            .where(StageOutput.case_id == case_id, StageOutput.stage_name == stage_name)
            .order_by(StageOutput.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
