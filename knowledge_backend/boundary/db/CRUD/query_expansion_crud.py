"""
Query expansion cache CRUD operations.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.models
System role: Query Expansion Cache persistence
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_backend.boundary.db.models.query_expansion_model import (
    ExpansionSource,
    QueryExpansionModel,
)

logger = logging.getLogger(__name__)


class QueryExpansionCRUD(BaseCRUD[QueryExpansionModel]):
    """CRUD operations for QueryExpansionModel."""

    def __init__(self) -> None:
        """Initialize QueryExpansionCRUD with QueryExpansionModel."""
        super().__init__(QueryExpansionModel)

    async def get_by_hash(
        self,
        session: AsyncSession,
        query_hash: str,
    ) -> QueryExpansionModel | None:
        """
        Look up a cached expansion.

        Args:
            session: Async database session
            query_hash: 32-char hash of the normalised query

        Returns:
            QueryExpansionModel if cached, None otherwise
        """
        stmt = select(QueryExpansionModel).where(QueryExpansionModel.query_hash == query_hash)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def put(
        self,
        session: AsyncSession,
        query_hash: str,
        normalized_query: str,
        expanded_query: str,
        source: ExpansionSource,
    ) -> QueryExpansionModel:
        """
        Store an expansion, keeping the first writer's row on a race.

        Commits the session. Call with a session dedicated to the cache write:
        on a duplicate key the session is rolled back and the stored row is
        returned instead.

        Args:
            session: Async database session (dedicated)
            query_hash: 32-char hash of the normalised query
            normalized_query: Normalised query text
            expanded_query: Expanded query text
            source: Where the expansion came from

        Returns:
            The stored QueryExpansionModel
        """
        entry = QueryExpansionModel(
            query_hash=query_hash,
            normalized_query=normalized_query,
            expanded_query=expanded_query,
            expansion_source=source,
            hit_count=0,
        )
        session.add(entry)
        try:
            await session.commit()
            return entry
        except IntegrityError:
            await session.rollback()
            logger.info(
                f"{__name__}:put - Concurrent insert for cached expansion, keeping stored row",
                extra={"query_hash": query_hash},
            )
            existing = await self.get_by_hash(session, query_hash)
            if existing is None:
                raise
            return existing

    async def record_hit(self, session: AsyncSession, query_hash: str) -> None:
        """
        Increment the hit counter of a cached expansion.

        Args:
            session: Async database session
            query_hash: 32-char hash of the normalised query
        """
        stmt = (
            update(QueryExpansionModel)
            .where(QueryExpansionModel.query_hash == query_hash)
            .values(hit_count=QueryExpansionModel.hit_count + 1)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)


query_expansion_crud = QueryExpansionCRUD()
