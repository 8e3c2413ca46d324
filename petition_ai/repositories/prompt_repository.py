"""Repository for prompt configuration rows."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from petition_ai.database.models import AgentPrompt
from petition_ai.repositories.base_repository import BaseRepository


class PromptRepository(BaseRepository[AgentPrompt]):

    def __init__(self, session: AsyncSession):
        super().__init__(session, AgentPrompt)

    async def get_by_slug(self, slug: str) -> Optional[AgentPrompt]:
        """Load a prompt row with its versions eagerly attached."""
        query = (
            select(AgentPrompt)
            .options(selectinload(AgentPrompt.versions))
            .where(AgentPrompt.slug == slug)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
