"""
Agent knowledge CRUD operations.

Links chunks to the agents allowed to retrieve them.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.models
System role: Agent retrieval scope persistence
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.base import utc_now
from knowledge_backend.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_backend.boundary.db.models.agent_knowledge_model import AgentKnowledgeModel


class AgentKnowledgeCRUD(BaseCRUD[AgentKnowledgeModel]):
    """CRUD operations for AgentKnowledgeModel."""

    def __init__(self) -> None:
        """Initialize AgentKnowledgeCRUD with AgentKnowledgeModel."""
        super().__init__(AgentKnowledgeModel)

    async def upsert_links(
        self,
        session: AsyncSession,
        agent_id: UUID,
        chunk_ids: Sequence[UUID],
    ) -> int:
        """
        Ensure an active link exists for every chunk.

        Existing links are re-activated and their synced_at refreshed; new
        ones are inserted. Running twice with the same input is a no-op apart
        from synced_at.

        Args:
            session: Async database session
            agent_id: Agent identifier
            chunk_ids: Chunks the agent may retrieve

        Returns:
            Number of links inserted
        """
        if not chunk_ids:
            return 0

        wanted = set(chunk_ids)
        stmt = select(AgentKnowledgeModel.chunk_id).where(
            AgentKnowledgeModel.agent_id == agent_id,
            AgentKnowledgeModel.chunk_id.in_(list(wanted)),
        )
        existing = set((await session.execute(stmt)).scalars().all())

        if existing:
            await session.execute(
                update(AgentKnowledgeModel)
                .where(
                    AgentKnowledgeModel.agent_id == agent_id,
                    AgentKnowledgeModel.chunk_id.in_(list(existing)),
                )
                .values(is_active=True, synced_at=utc_now())
                .execution_options(synchronize_session=False)
            )

        new_links = [
            AgentKnowledgeModel(agent_id=agent_id, chunk_id=chunk_id, is_active=True)
            for chunk_id in wanted - existing
        ]
        session.add_all(new_links)
        await session.flush()
        return len(new_links)

    async def active_chunk_ids(self, session: AsyncSession, agent_id: UUID) -> set[UUID]:
        """
        Chunks an agent can currently retrieve.

        Args:
            session: Async database session
            agent_id: Agent identifier

        Returns:
            Set of chunk UUIDs with an active link
        """
        stmt = select(AgentKnowledgeModel.chunk_id).where(
            AgentKnowledgeModel.agent_id == agent_id,
            AgentKnowledgeModel.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return set(result.scalars().all())


agent_knowledge_crud = AgentKnowledgeCRUD()
