"""
PostgreSQL search backend.

Vector search with pgvector cosine distance and keyword search with
PostgreSQL full-text ranking over content and original_content, both scoped
through active agent knowledge links.

Dependencies: sqlalchemy, pgvector, knowledge_backend.boundary.db
System role: Production search backend for hybrid retrieval
"""

import logging
import re
import uuid
from typing import Sequence

from sqlalchemy import and_, cast, func, select
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_backend.boundary.db.models import (
    AgentKnowledgeModel,
    ChunkModel,
    DocumentModel,
    EmbeddingStatus,
)
from knowledge_backend.boundary.search.base_search import (
    ChunkRecord,
    KeywordHit,
    SearchScope,
    VectorHit,
)
from knowledge_backend.core.exceptions import SearchBackendError

logger = logging.getLogger(__name__)

_TSQUERY_TOKEN = re.compile(r"[a-z0-9]+")


def build_tsquery(terms: Sequence[str]) -> str:
    """
    OR-query for to_tsquery from free-form terms.

    Tokens are reduced to [a-z0-9]+ so user input cannot inject tsquery syntax.

    Args:
        terms: Search terms

    Returns:
        str: "a | b | c" (empty when no usable token)
    """
    tokens: list[str] = []
    for term in terms:
        for token in _TSQUERY_TOKEN.findall(term.lower()):
            if token not in tokens:
                tokens.append(token)
    return " | ".join(tokens)


class PgSearchBackend:
    """
    SearchBackend over the chunks table.

    Each call opens its own session so vector and keyword legs can run
    concurrently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        text_search_config: str = "english",
    ) -> None:
        """
        Initialize the backend.

        Args:
            session_factory: Async session factory
            text_search_config: PostgreSQL text search configuration
        """
        self._session_factory = session_factory
        self._ts_config = text_search_config

    def _scoped(self, stmt, scope: SearchScope):
        stmt = stmt.join(
            AgentKnowledgeModel,
            and_(
                AgentKnowledgeModel.chunk_id == ChunkModel.id,
                AgentKnowledgeModel.agent_id == scope.agent_id,
                AgentKnowledgeModel.is_active.is_(True),
            ),
        ).where(ChunkModel.embedding_status == EmbeddingStatus.READY)
        if scope.document_name:
            stmt = stmt.join(DocumentModel, DocumentModel.id == ChunkModel.document_id).where(
                DocumentModel.name == scope.document_name
            )
        return stmt

    async def vector_search(
        self,
        embedding: list[float],
        scope: SearchScope,
        threshold: float,
        limit: int,
    ) -> list[VectorHit]:
        """
        Nearest ready chunks for an embedding.

        Args:
            embedding: Query vector
            scope: Agent and optional document filter
            threshold: Minimum cosine similarity
            limit: Candidate cap

        Returns:
            list[VectorHit]: Best first

        Raises:
            SearchBackendError: On database failure
        """
        distance = ChunkModel.embedding.cosine_distance(embedding)
        similarity = (1 - distance).label("similarity")
        stmt = self._scoped(select(ChunkModel.id, similarity), scope)
        stmt = (
            stmt.where(ChunkModel.embedding.is_not(None), (1 - distance) >= threshold)
            .order_by(distance)
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise SearchBackendError(f"Vector search failed: {e}", operation="vector_search") from e

        return [VectorHit(chunk_id=row[0], similarity=float(row[1])) for row in rows]

    async def keyword_search(
        self,
        terms: Sequence[str],
        scope: SearchScope,
        limit: int,
    ) -> list[KeywordHit]:
        """
        Full-text matches for any of the terms.

        Args:
            terms: Query terms (original terms first, then synonyms)
            scope: Agent and optional document filter
            limit: Candidate cap

        Returns:
            list[KeywordHit]: Best ts_rank first

        Raises:
            SearchBackendError: On database failure
        """
        query_text = build_tsquery(terms)
        if not query_text:
            return []

        config = cast(self._ts_config, REGCONFIG)
        document = func.to_tsvector(
            config,
            func.coalesce(ChunkModel.content, "")
            + " "
            + func.coalesce(ChunkModel.original_content, ""),
        )
        tsquery = func.to_tsquery(config, query_text)
        rank = func.ts_rank(document, tsquery).label("rank")

        stmt = self._scoped(select(ChunkModel.id, rank), scope)
        stmt = stmt.where(document.op("@@")(tsquery)).order_by(rank.desc()).limit(limit)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise SearchBackendError(f"Keyword search failed: {e}", operation="keyword_search") from e

        return [KeywordHit(chunk_id=row[0], rank=float(row[1])) for row in rows]

    async def fetch_chunks(self, chunk_ids: Sequence[uuid.UUID]) -> list[ChunkRecord]:
        """
        Load chunk records with their document names.

        Args:
            chunk_ids: Chunk UUIDs

        Returns:
            list[ChunkRecord]: Records for the chunks that exist

        Raises:
            SearchBackendError: On database failure
        """
        if not chunk_ids:
            return []
        stmt = (
            select(ChunkModel, DocumentModel.name)
            .join(DocumentModel, DocumentModel.id == ChunkModel.document_id)
            .where(ChunkModel.id.in_(list(chunk_ids)))
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise SearchBackendError(f"Chunk fetch failed: {e}", operation="fetch_chunks") from e

        return [
            ChunkRecord(
                chunk_id=chunk.id,
                document_id=chunk.document_id,
                document_name=name,
                content=chunk.content,
                original_content=chunk.original_content,
                chunk_type=chunk.chunk_type,
                page_number=chunk.page_number,
                heading_path=list(chunk.heading_path or []),
            )
            for chunk, name in rows
        ]
