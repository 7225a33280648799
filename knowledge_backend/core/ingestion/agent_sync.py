"""
Agent knowledge sync.

Links the ready chunks of documents to an agent so hybrid retrieval can see
them.

Dependencies: sqlalchemy, knowledge_backend.boundary.db
System role: Retrieval scope maintenance
"""

import logging
import uuid
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_backend.boundary.db.CRUD.agent_knowledge_crud import agent_knowledge_crud
from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud

logger = logging.getLogger(__name__)


async def sync_agent(
    session_factory: async_sessionmaker[AsyncSession],
    agent_id: uuid.UUID,
    document_ids: Sequence[uuid.UUID] | None = None,
) -> int:
    """
    Ensure an active link exists for every ready chunk.

    Idempotent: a second run with the same input inserts nothing.

    Args:
        session_factory: Session factory
        agent_id: Agent identifier
        document_ids: Restrict to these documents (None for every document)

    Returns:
        int: Number of links inserted
    """
    async with session_factory() as session:
        chunk_ids = await chunk_crud.get_ready_ids(session, document_ids)
        inserted = await agent_knowledge_crud.upsert_links(session, agent_id, chunk_ids)
        await session.commit()

    logger.info(
        f"{__name__}:sync_agent - Synced {len(chunk_ids)} chunks, {inserted} new links",
        extra={"agent_id": str(agent_id)},
    )
    return inserted
